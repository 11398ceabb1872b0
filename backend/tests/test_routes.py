import json

import httpx
import pytest

from shipyard.dependencies import (
    get_current_user,
    get_db,
    get_deploy_service,
    get_reconciler,
    get_webhook_service,
)
from shipyard.exceptions import ProviderError
from shipyard.main import app
from shipyard.models.user import User
from shipyard.models.vercel import ProviderFailure, ProviderSuccess, VercelDeployment
from shipyard.services.reconciliation_service import DeploymentReconciler
from shipyard.services.webhook_service import WebhookService, compute_signature

SECRET = "whsec_test"


@pytest.fixture
def overrides(db_session, deploy_service, repository, accounts, vercel, notification_service):
    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_deploy_service] = lambda: deploy_service
    app.dependency_overrides[get_reconciler] = lambda: DeploymentReconciler(
        repository, vercel, notification_service
    )
    app.dependency_overrides[get_webhook_service] = lambda: WebhookService(
        repository, accounts, deploy_service, secret=SECRET
    )
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in(overrides):
    overrides[get_current_user] = lambda: User(id="u1", email="u1@example.com", name="octocat")


@pytest.fixture
async def client(overrides):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


DEPLOY_BODY = {
    "repo_name": "My-Site",
    "repo_id": 42,
    "repo_full_name": "octocat/My-Site",
}


@pytest.mark.asyncio
async def test_deploy_requires_authentication(client):
    response = await client.post("/api/projects/deploy", json=DEPLOY_BODY)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_deploy_returns_deployment_ids(client, signed_in):
    response = await client.post("/api/projects/deploy", json=DEPLOY_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["project_name"] == "my-site"
    assert data["vercel_deployment_id"] == "dep_1"
    assert data["deployment_id"]


@pytest.mark.asyncio
async def test_deploy_surfaces_provider_message(client, signed_in, vercel):
    vercel.trigger_deployment.return_value = ProviderFailure(
        ProviderError("Repository not linked", status_code=400)
    )

    response = await client.post("/api/projects/deploy", json=DEPLOY_BODY)

    assert response.status_code == 400
    assert response.json()["detail"] == "Repository not linked"


@pytest.mark.asyncio
async def test_poll_then_list_deployments(client, signed_in, vercel):
    await client.post("/api/projects/deploy", json=DEPLOY_BODY)
    vercel.get_deployment.return_value = ProviderSuccess(
        VercelDeployment(id="dep_1", url="my-site-xyz.provider.app", readyState="READY")
    )

    poll = await client.get("/api/deployments/dep_1")
    assert poll.status_code == 200
    assert poll.json()["status"] == "READY"
    assert poll.json()["terminal"] is True

    listing = await client.get("/api/projects/My-Site/deployments")
    data = listing.json()
    assert data["project"]["name"] == "my-site"
    assert data["deployments"][0]["url"] == "https://my-site-xyz.provider.app"


@pytest.mark.asyncio
async def test_poll_unknown_deployment_is_404(client, signed_in):
    response = await client.get("/api/deployments/dep_missing")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_missing_project_succeeds(client, signed_in):
    response = await client.delete("/api/projects/ghost")

    assert response.status_code == 200
    assert response.json() == {"success": True}


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(client):
    body = json.dumps({"ref": "refs/heads/main"}).encode()

    response = await client.post(
        "/api/webhooks/github",
        content=body,
        headers={"x-github-event": "push", "x-hub-signature-256": "sha256=deadbeef"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_webhook_push_triggers_redeploy(client, deploy_service, github_account):
    await deploy_service.deploy("u1", "My-Site", 42, "octocat/My-Site")
    body = json.dumps(
        {
            "ref": "refs/heads/main",
            "repository": {
                "full_name": "octocat/My-Site",
                "name": "My-Site",
                "default_branch": "main",
            },
        }
    ).encode()

    response = await client.post(
        "/api/webhooks/github",
        content=body,
        headers={
            "x-github-event": "push",
            "x-hub-signature-256": compute_signature(SECRET, body),
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Deployment triggered"
    assert data["vercel_deployment_id"] == "dep_push"


@pytest.mark.asyncio
async def test_webhook_without_project_is_404(client):
    body = json.dumps(
        {
            "ref": "refs/heads/main",
            "repository": {"full_name": "octocat/none", "name": "none", "default_branch": "main"},
        }
    ).encode()

    response = await client.post(
        "/api/webhooks/github",
        content=body,
        headers={
            "x-github-event": "push",
            "x-hub-signature-256": compute_signature(SECRET, body),
        },
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_poll_with_wait_returns_settled_status(client, signed_in, vercel):
    await client.post("/api/projects/deploy", json=DEPLOY_BODY)
    vercel.get_deployment.return_value = ProviderSuccess(
        VercelDeployment(id="dep_1", url="my-site-xyz.provider.app", readyState="ERROR")
    )

    response = await client.get("/api/deployments/dep_1", params={"wait": "true"})

    assert response.status_code == 200
    assert response.json()["status"] == "ERROR"
    assert response.json()["terminal"] is True
