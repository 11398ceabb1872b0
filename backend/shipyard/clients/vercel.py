from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from shipyard.exceptions import ProviderConflict, ProviderError, UpstreamUnavailable
from shipyard.logging_config import get_logger
from shipyard.models.vercel import (
    ProviderFailure,
    ProviderResult,
    ProviderSuccess,
    VercelDeployment,
    VercelDomain,
    VercelProject,
)

logger = get_logger(__name__)

T = TypeVar("T")

VERCEL_API_URL = "https://api.vercel.com"
PROJECT_EXISTS_CODE = "project_already_exists"


class VercelClient:
    """Thin request/response wrapper around the Vercel REST API.

    No retries and no caching: every method performs exactly one HTTP call and
    reports the outcome as a ``ProviderResult``. Provider messages are passed
    through verbatim.
    """

    service_name = "Vercel"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        base_url: str = VERCEL_API_URL,
    ) -> None:
        self._http = http_client
        self._token = token
        self._base_url = base_url.rstrip("/")

    async def create_project(
        self,
        name: str,
        repo_full_name: str,
        framework: str | None = "nextjs",
    ) -> ProviderResult[VercelProject]:
        logger.info("vercel_project_create", project=name, repo=repo_full_name)
        body: dict[str, Any] = {
            "name": name,
            "gitRepository": {"type": "github", "repo": repo_full_name},
        }
        if framework:
            body["framework"] = framework
        return await self._call(
            "POST",
            "/v9/projects",
            parse=VercelProject.model_validate,
            fallback_message="Failed to create Vercel project",
            json=body,
        )

    async def trigger_deployment(
        self,
        name: str,
        repo_id: int | str,
        branch: str = "main",
    ) -> ProviderResult[VercelDeployment]:
        """Start a deployment of ``branch`` for the repository with numeric id ``repo_id``."""
        logger.info("vercel_deployment_trigger", project=name, repo_id=repo_id, branch=branch)
        return await self._call(
            "POST",
            "/v13/deployments",
            parse=VercelDeployment.from_payload,
            fallback_message="Failed to trigger deployment",
            params={"skipAutoDetectionConfirmation": "1"},
            json={
                "name": name,
                "gitSource": {"type": "github", "repoId": str(repo_id), "ref": branch},
            },
        )

    async def create_deployment_from_repo(
        self,
        name: str,
        repo_full_name: str,
        branch: str = "main",
        framework: str | None = None,
    ) -> ProviderResult[VercelDeployment]:
        """Start a deployment addressed by ``owner/repo`` instead of the numeric repo id."""
        logger.info(
            "vercel_deployment_create", project=name, repo=repo_full_name, branch=branch
        )
        body: dict[str, Any] = {
            "name": name,
            "gitSource": {"type": "github", "repo": repo_full_name, "ref": branch},
        }
        if framework:
            body["projectSettings"] = {"framework": framework}
        return await self._call(
            "POST",
            "/v13/deployments",
            parse=VercelDeployment.from_payload,
            fallback_message="Failed to create deployment",
            params={"skipAutoDetectionConfirmation": "1"},
            json=body,
        )

    async def get_deployment(self, deployment_id: str) -> ProviderResult[VercelDeployment]:
        def parse(payload: dict[str, Any]) -> VercelDeployment:
            # Vercel occasionally embeds the error in a 200 body.
            if payload.get("error"):
                raise self._provider_error(payload, None, "Failed to fetch deployment")
            return VercelDeployment.from_payload(payload)

        return await self._call(
            "GET",
            f"/v13/deployments/{deployment_id}",
            parse=parse,
            fallback_message="Failed to fetch deployment",
        )

    async def delete_project(self, name: str) -> ProviderResult[None]:
        """Delete a project; a 404 counts as already deleted."""
        try:
            response = await self._send("DELETE", f"/v9/projects/{name}")
        except UpstreamUnavailable as exc:
            return ProviderFailure(exc)

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("vercel_project_already_deleted", project=name)
            return ProviderSuccess(None)
        if response.is_error:
            return ProviderFailure(self._error_from_response(response, "Failed to delete project"))

        logger.info("vercel_project_deleted", project=name)
        return ProviderSuccess(None)

    async def add_domain(self, name: str, domain: str) -> ProviderResult[VercelDomain]:
        return await self._call(
            "POST",
            f"/v10/projects/{name}/domains",
            parse=VercelDomain.model_validate,
            fallback_message="Failed to add domain",
            json={"name": domain},
        )

    async def list_domains(self, name: str) -> ProviderResult[list[VercelDomain]]:
        """List project domains. Read path is best-effort: failures yield ``[]``."""

        def parse(payload: dict[str, Any]) -> list[VercelDomain]:
            return [VercelDomain.model_validate(item) for item in payload.get("domains") or []]

        result = await self._call(
            "GET",
            f"/v9/projects/{name}/domains",
            parse=parse,
            fallback_message="Failed to list domains",
        )
        if not result.ok:
            logger.warning("vercel_list_domains_failed", project=name, error=str(result.error))
            return ProviderSuccess([])
        return result

    async def remove_domain(self, name: str, domain: str) -> ProviderResult[None]:
        return await self._call(
            "DELETE",
            f"/v9/projects/{name}/domains/{domain}",
            parse=lambda _payload: None,
            fallback_message="Failed to remove domain",
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers(),
                **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.error("vercel_request_failed", method=method, path=path, error=str(exc))
            raise UpstreamUnavailable(self.service_name, str(exc) or type(exc).__name__) from exc

    async def _call(
        self,
        method: str,
        path: str,
        *,
        parse: Callable[[dict[str, Any]], T],
        fallback_message: str,
        **kwargs: Any,
    ) -> ProviderResult[T]:
        try:
            response = await self._send(method, path, **kwargs)
            if response.is_error:
                raise self._error_from_response(response, fallback_message)
            payload = self._json(response) if response.content else {}
            try:
                value = parse(payload)
            except ValidationError as exc:
                raise UpstreamUnavailable(
                    self.service_name,
                    f"unexpected response shape: {exc.error_count()} validation errors",
                    response.status_code,
                ) from exc
        except (ProviderError, UpstreamUnavailable) as exc:
            if not isinstance(exc, ProviderConflict):
                logger.warning(
                    "vercel_call_failed", method=method, path=path, error=str(exc)
                )
            return ProviderFailure(exc)
        return ProviderSuccess(value)

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(
                self.service_name, "response was not JSON", response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(
                self.service_name, "response was not a JSON object", response.status_code
            )
        return payload

    def _error_from_response(
        self, response: httpx.Response, fallback_message: str
    ) -> ProviderError | UpstreamUnavailable:
        if response.status_code >= httpx.codes.INTERNAL_SERVER_ERROR:
            return UpstreamUnavailable(
                self.service_name,
                f"HTTP {response.status_code}",
                response.status_code,
            )
        try:
            payload = self._json(response)
        except UpstreamUnavailable as exc:
            return exc
        return self._provider_error(payload, response.status_code, fallback_message)

    @staticmethod
    def _provider_error(
        payload: dict[str, Any], status_code: int | None, fallback_message: str
    ) -> ProviderError:
        # Vercel errors are usually {"error": {"code": ..., "message": ...}}.
        error = payload.get("error")
        if not isinstance(error, dict):
            error = {}
        message = error.get("message") or payload.get("message") or fallback_message
        code = error.get("code") or payload.get("code")

        if code == PROJECT_EXISTS_CODE or status_code == httpx.codes.CONFLICT:
            return ProviderConflict(message, status_code=status_code, code=code)
        return ProviderError(message, status_code=status_code, code=code)
