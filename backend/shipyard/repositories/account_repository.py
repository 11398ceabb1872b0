from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shipyard.models.user import AccountDB


class AccountRepository:
    """Read access to OAuth credentials linked by the identity provider."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_access_token(self, user_id: str, provider: str = "github") -> str | None:
        result = await self.session.execute(
            select(AccountDB.access_token)
            .where(AccountDB.user_id == user_id, AccountDB.provider == provider)
            .order_by(AccountDB.created_at.desc())
            .limit(1)
        )
        token = result.scalar_one_or_none()
        return token or None
