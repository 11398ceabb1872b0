from unittest.mock import AsyncMock, MagicMock

import pytest

from shipyard.clients.vercel import VercelClient
from shipyard.database import build_engine, build_sessionmaker, init_db
from shipyard.models.user import AccountDB, User
from shipyard.models.vercel import ProviderSuccess, VercelDeployment, VercelProject
from shipyard.repositories.account_repository import AccountRepository
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.deploy_service import DeployService
from shipyard.services.notification_service import NotificationService


@pytest.fixture
async def db_session():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)

    SessionLocal = build_sessionmaker(engine)
    async with SessionLocal() as session:
        session.add_all(
            [
                User(id="u1", email="u1@example.com", name="octocat"),
                User(id="u2", email="u2@example.com", name="hubot"),
            ]
        )
        await session.commit()
        yield session

    await engine.dispose()


@pytest.fixture
async def github_account(db_session):
    account = AccountDB(
        id="acc1",
        user_id="u1",
        provider="github",
        provider_account_id="1001",
        access_token="gho_token",
    )
    db_session.add(account)
    await db_session.commit()
    return account


@pytest.fixture
def repository(db_session):
    return ProjectRepository(db_session)


@pytest.fixture
def accounts(db_session):
    return AccountRepository(db_session)


@pytest.fixture
def notification_service():
    return NotificationService()


@pytest.fixture
def vercel():
    client = MagicMock(spec=VercelClient)
    client.create_project = AsyncMock(
        return_value=ProviderSuccess(VercelProject(id="prj_1", name="my-site"))
    )
    client.trigger_deployment = AsyncMock(
        return_value=ProviderSuccess(
            VercelDeployment(id="dep_1", url="my-site-xyz.provider.app", readyState="QUEUED")
        )
    )
    client.create_deployment_from_repo = AsyncMock(
        return_value=ProviderSuccess(
            VercelDeployment(id="dep_push", url="my-site-push.provider.app")
        )
    )
    client.get_deployment = AsyncMock()
    client.delete_project = AsyncMock(return_value=ProviderSuccess(None))
    client.add_domain = AsyncMock()
    client.list_domains = AsyncMock(return_value=ProviderSuccess([]))
    client.remove_domain = AsyncMock(return_value=ProviderSuccess(None))
    return client


@pytest.fixture
def deploy_service(repository, vercel, notification_service):
    return DeployService(
        repository=repository,
        vercel=vercel,
        notification_service=notification_service,
    )
