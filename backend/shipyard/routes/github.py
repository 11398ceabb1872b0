from __future__ import annotations

from fastapi import APIRouter

from shipyard.dependencies import AccountRepositoryDep, CurrentUser, GitHubClientDep
from shipyard.exceptions import MissingCredential, ShipyardError
from shipyard.models.api import RepositoryListResponse
from shipyard.routes.errors import to_http_exception

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/repos", response_model=RepositoryListResponse)
async def list_repositories(
    github: GitHubClientDep,
    accounts: AccountRepositoryDep,
    current_user: CurrentUser,
) -> RepositoryListResponse:
    try:
        token = await accounts.get_access_token(current_user.id)
        if not token:
            raise MissingCredential(current_user.id)
        repos = await github.list_repositories(token)
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    return RepositoryListResponse(repos=repos)
