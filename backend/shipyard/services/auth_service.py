from __future__ import annotations

import asyncio

import jwt
from fastapi import HTTPException, status
from jwt import PyJWKClient
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shipyard.config import settings
from shipyard.logging_config import get_logger
from shipyard.models.user import User

logger = get_logger(__name__)


class AuthService:
    """Verifies session JWTs issued by the identity provider and resolves users."""

    def __init__(
        self,
        auth_url: str,
        auth_internal_url: str | None = None,
    ):
        self.auth_url = auth_url.rstrip("/")
        internal_base_url = (auth_internal_url or auth_url).rstrip("/")
        self.jwks_client = PyJWKClient(
            f"{internal_base_url}/api/auth/jwks",
            cache_keys=True,
            max_cached_keys=16,
            lifespan=300,  # Cache for 5 minutes
        )

    async def verify_token(self, token: str) -> dict:
        """Verify JWT token and return payload."""
        return await asyncio.to_thread(self._verify_token_sync, token)

    def _verify_token_sync(self, token: str) -> dict:
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["EdDSA", "RS256", "ES256"],
                audience=self.auth_url,
                issuer=self.auth_url,
            )
        except ExpiredSignatureError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
            ) from exc
        except (InvalidTokenError, PyJWKClientError) as exc:
            logger.info("auth_token_rejected", error=str(exc))
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {exc}",
            ) from exc

    async def get_user_from_token(self, token: str, db: AsyncSession) -> User:
        """Get user from token, creating user if not exists."""
        payload = await self.verify_token(token)

        user_id = payload.get("userId") or payload.get("user_id") or payload.get("sub")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing user ID",
            )

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        if not user:
            email = payload.get("email")
            if not email:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Token missing email",
                )

            user = User(
                id=user_id,
                email=email,
                name=payload.get("name"),
                image=payload.get("image"),
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            logger.info("user_created", user_id=user_id)

        return user


auth_service = AuthService(
    auth_url=settings.better_auth_url,
    auth_internal_url=settings.better_auth_internal_url,
)
