from __future__ import annotations

import httpx
from pydantic import ValidationError

from shipyard.exceptions import UpstreamUnavailable
from shipyard.logging_config import get_logger
from shipyard.models.github import GitHubRepository

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
REPOSITORY_PAGE_SIZE = 100


class GitHubClient:
    """Read-only directory of the repositories a user's token can see."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = GITHUB_API_URL) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def list_repositories(self, access_token: str) -> list[GitHubRepository]:
        """List public and private repositories, most recently updated first.

        Only the first page of ``REPOSITORY_PAGE_SIZE`` entries is returned.
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github.v3+json",
        }
        params = {
            "sort": "updated",
            "per_page": str(REPOSITORY_PAGE_SIZE),
            "visibility": "all",
        }

        try:
            resp = await self._http.get(
                f"{self._base_url}/user/repos", headers=headers, params=params
            )
        except httpx.HTTPError as exc:
            logger.error("github_repos_request_failed", error=str(exc))
            raise UpstreamUnavailable("GitHub", str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            logger.error(
                "github_repos_fetch_failed",
                status_code=resp.status_code,
                body=resp.text[:500],
            )
            raise UpstreamUnavailable(
                "GitHub", "Failed to fetch repositories from GitHub", resp.status_code
            )

        try:
            data = resp.json()
            return [GitHubRepository.model_validate(item) for item in data]
        except (ValueError, TypeError, ValidationError) as exc:
            logger.error("github_repos_malformed", error=str(exc))
            raise UpstreamUnavailable(
                "GitHub", "unexpected repository listing", resp.status_code
            ) from exc
