from __future__ import annotations

from fastapi import APIRouter

from shipyard.dependencies import AccountRepositoryDep, CurrentUser
from shipyard.models.api import UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: CurrentUser,
    accounts: AccountRepositoryDep,
) -> UserResponse:
    """Get current authenticated user information."""
    token = await accounts.get_access_token(current_user.id)
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        image=current_user.image,
        github_linked=token is not None,
    )
