from __future__ import annotations

from typing import Annotated

import httpx
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from shipyard.clients.github import GitHubClient
from shipyard.clients.vercel import VercelClient
from shipyard.config import settings
from shipyard.database import get_db
from shipyard.models.user import User
from shipyard.repositories.account_repository import AccountRepository
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.auth_service import auth_service
from shipyard.services.deploy_service import DeployService
from shipyard.services.notification_service import NotificationService
from shipyard.services.reconciliation_service import DeploymentReconciler
from shipyard.services.webhook_service import WebhookService

AsyncDBSession = Annotated[AsyncSession, Depends(get_db)]


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


async def get_current_user(
    request: Request,
    db: AsyncDBSession,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Dependency to get current authenticated user from a bearer token."""
    token_value = _extract_bearer_token(authorization)
    if not token_value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await auth_service.get_user_from_token(token_value, db)
    request.state.user_id = user.id
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_http_client(connection: HTTPConnection) -> httpx.AsyncClient:
    return connection.app.state.http_client


def get_notification_service(connection: HTTPConnection) -> NotificationService:
    return connection.app.state.notification_service


HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_vercel_client(http_client: HttpClientDep) -> VercelClient:
    return VercelClient(http_client, settings.vercel_api_token, settings.vercel_api_url)


def get_github_client(http_client: HttpClientDep) -> GitHubClient:
    return GitHubClient(http_client, settings.github_api_url)


def get_project_repository(db: AsyncDBSession) -> ProjectRepository:
    return ProjectRepository(db)


def get_account_repository(db: AsyncDBSession) -> AccountRepository:
    return AccountRepository(db)


VercelClientDep = Annotated[VercelClient, Depends(get_vercel_client)]
GitHubClientDep = Annotated[GitHubClient, Depends(get_github_client)]
ProjectRepositoryDep = Annotated[ProjectRepository, Depends(get_project_repository)]
AccountRepositoryDep = Annotated[AccountRepository, Depends(get_account_repository)]


def get_deploy_service(
    repository: ProjectRepositoryDep,
    vercel: VercelClientDep,
    notification_service: NotificationServiceDep,
) -> DeployService:
    return DeployService(
        repository=repository,
        vercel=vercel,
        notification_service=notification_service,
        default_framework=settings.default_framework,
        default_branch=settings.default_branch,
    )


DeployServiceDep = Annotated[DeployService, Depends(get_deploy_service)]


def get_reconciler(
    repository: ProjectRepositoryDep,
    vercel: VercelClientDep,
    notification_service: NotificationServiceDep,
) -> DeploymentReconciler:
    return DeploymentReconciler(
        repository=repository,
        vercel=vercel,
        notification_service=notification_service,
        interval=settings.poll_interval_seconds,
        max_attempts=settings.poll_max_attempts,
    )


ReconcilerDep = Annotated[DeploymentReconciler, Depends(get_reconciler)]


def get_webhook_service(
    repository: ProjectRepositoryDep,
    accounts: AccountRepositoryDep,
    deploy_service: DeployServiceDep,
) -> WebhookService:
    return WebhookService(
        repository=repository,
        accounts=accounts,
        deploy_service=deploy_service,
        secret=settings.github_webhook_secret,
    )


WebhookServiceDep = Annotated[WebhookService, Depends(get_webhook_service)]
