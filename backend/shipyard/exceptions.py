from __future__ import annotations


class ShipyardError(RuntimeError):
    """Base error for orchestration failures."""


class UpstreamUnavailable(ShipyardError):
    """Raised when GitHub or Vercel cannot be reached or returns garbage.

    Retryable: the caller may simply invoke the operation again.
    """

    def __init__(self, service: str, detail: str, status_code: int | None = None):
        super().__init__(f"{service} is unavailable: {detail}")
        self.service = service
        self.detail = detail
        self.status_code = status_code


class ProviderError(ShipyardError):
    """Raised when Vercel answers with a structured business error."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ProviderConflict(ProviderError):
    """Raised when the target Vercel resource already exists."""


class DeployTriggerFailed(ShipyardError):
    """Raised when Vercel refuses to start a deployment."""

    def __init__(self, project_name: str, cause: ShipyardError):
        super().__init__(str(cause))
        self.project_name = project_name
        self.cause = cause


class NotFoundError(ShipyardError):
    """Base error for local lookups that found nothing."""


class ProjectNotFoundError(NotFoundError):
    """Raised when a project cannot be resolved for the caller."""

    def __init__(self, project: str):
        super().__init__(f"Project '{project}' was not found")
        self.project = project


class DeploymentNotFoundError(NotFoundError):
    """Raised when a deployment cannot be resolved for the caller."""

    def __init__(self, deployment_id: str):
        super().__init__(f"Deployment '{deployment_id}' was not found")
        self.deployment_id = deployment_id


class InvalidSignature(ShipyardError):
    """Raised when a webhook body does not match its HMAC signature."""


class InvalidWebhookPayload(ShipyardError):
    """Raised when a webhook body is not the JSON shape GitHub sends."""


class MissingCredential(ShipyardError):
    """Raised when a user has no linked GitHub access token."""

    def __init__(self, user_id: str, provider: str = "github"):
        super().__init__(f"No {provider} access token linked for user '{user_id}'")
        self.user_id = user_id
        self.provider = provider
