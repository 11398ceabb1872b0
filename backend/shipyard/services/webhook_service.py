from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, ValidationError

from shipyard.exceptions import (
    InvalidSignature,
    InvalidWebhookPayload,
    MissingCredential,
    ProjectNotFoundError,
)
from shipyard.logging_config import get_logger
from shipyard.repositories.account_repository import AccountRepository
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.deploy_service import DeployService

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class PushRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str
    name: str
    default_branch: str = "main"


class PushEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ref: str | None = None
    repository: PushRepository


@dataclass(slots=True)
class WebhookOutcome:
    message: str
    deployment_id: str | None = None
    vercel_deployment_id: str | None = None


class WebhookService:
    """Turns GitHub push deliveries into redeploys of the matching project.

    Every valid push to a default branch triggers its own deployment; repeated
    deliveries are not de-duplicated.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        accounts: AccountRepository,
        deploy_service: DeployService,
        secret: str | None = None,
    ):
        self.repository = repository
        self.accounts = accounts
        self.deploy_service = deploy_service
        self.secret = secret

    def verify_signature(self, body: bytes, signature: str | None) -> None:
        # Unsigned deliveries are accepted when no secret is configured.
        if not self.secret:
            return
        expected = compute_signature(self.secret, body)
        if not signature or not hmac.compare_digest(signature, expected):
            logger.warning("webhook_invalid_signature", has_signature=bool(signature))
            raise InvalidSignature("Invalid signature")

    async def handle(self, event: str | None, body: bytes, signature: str | None) -> WebhookOutcome:
        self.verify_signature(body, signature)

        if event != "push":
            return WebhookOutcome(message=f"Ignoring {event} event")

        try:
            push = PushEvent.model_validate_json(body)
        except ValidationError as exc:
            logger.warning("webhook_invalid_payload", errors=exc.error_count())
            raise InvalidWebhookPayload("Malformed push payload") from exc

        repo = push.repository
        if push.ref != f"refs/heads/{repo.default_branch}":
            logger.info("webhook_ignored_ref", ref=push.ref, default_branch=repo.default_branch)
            return WebhookOutcome(message="Ignoring non-default branch push")

        log = logger.bind(repo=repo.full_name, branch=repo.default_branch)
        log.info("webhook_push_received")

        project = await self.repository.find_project_by_repo(repo.full_name)
        if project is None:
            log.info("webhook_no_project")
            raise ProjectNotFoundError(repo.full_name)

        token = await self.accounts.get_access_token(project.user_id)
        if not token:
            log.warning("webhook_missing_credential", user_id=project.user_id)
            raise MissingCredential(project.user_id)

        log.info("webhook_redeploy", project=project.name)
        result = await self.deploy_service.redeploy_from_push(project, repo.default_branch)
        return WebhookOutcome(
            message="Deployment triggered",
            deployment_id=result.deployment_id,
            vercel_deployment_id=result.vercel_deployment_id,
        )
