import asyncio
from unittest.mock import AsyncMock

import pytest

from shipyard.exceptions import DeploymentNotFoundError, ProviderError, UpstreamUnavailable
from shipyard.models.project import DeploymentEventType, DeploymentStatus
from shipyard.models.vercel import ProviderFailure, ProviderSuccess, VercelDeployment
from shipyard.services.reconciliation_service import (
    DeploymentReconciler,
    map_ready_state,
    public_url,
)


def snapshot(state, url="my-site-xyz.provider.app"):
    return ProviderSuccess(VercelDeployment(id="dep_1", url=url, readyState=state))


@pytest.fixture
def reconciler(repository, vercel, notification_service):
    return DeploymentReconciler(
        repository=repository,
        vercel=vercel,
        notification_service=notification_service,
    )


@pytest.fixture
async def queued_deployment(deploy_service):
    return await deploy_service.deploy("u1", "My-Site", 42, "octocat/My-Site")


@pytest.fixture
def status_writes(repository, monkeypatch):
    writes = []
    original = repository.update_deployment_status

    async def spy(deployment_id, status, url=None):
        writes.append((status, url))
        return await original(deployment_id, status, url)

    monkeypatch.setattr(repository, "update_deployment_status", spy)
    return writes


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        ("QUEUED", DeploymentStatus.QUEUED),
        ("INITIALIZING", DeploymentStatus.BUILDING),
        ("BUILDING", DeploymentStatus.BUILDING),
        ("READY", DeploymentStatus.READY),
        ("ERROR", DeploymentStatus.ERROR),
        ("CANCELED", DeploymentStatus.CANCELED),
        (None, DeploymentStatus.QUEUED),
    ],
)
def test_map_ready_state(state, expected):
    assert map_ready_state(state) == expected


def test_public_url_adds_scheme_once():
    assert public_url("my-site.provider.app") == "https://my-site.provider.app"
    assert public_url("https://my-site.provider.app") == "https://my-site.provider.app"
    assert public_url(None) is None


@pytest.mark.asyncio
async def test_ready_poll_persists_status_and_https_url(
    reconciler, repository, vercel, queued_deployment
):
    vercel.get_deployment.return_value = snapshot("READY")

    outcome = await reconciler.reconcile("dep_1")

    assert outcome.terminal
    assert outcome.status == DeploymentStatus.READY
    deployment = await repository.get_deployment_by_vercel_id("dep_1")
    assert deployment.status == DeploymentStatus.READY
    assert deployment.url == "https://my-site-xyz.provider.app"


@pytest.mark.asyncio
async def test_watch_converges_and_deduplicates_building(
    reconciler, repository, vercel, notification_service, queued_deployment, status_writes
):
    vercel.get_deployment.side_effect = [
        snapshot("QUEUED"),
        snapshot("BUILDING"),
        snapshot("BUILDING"),
        snapshot("READY"),
    ]
    sleep = AsyncMock()

    outcome = await reconciler.watch("dep_1", interval=0.5, sleep=sleep)

    assert outcome.status == DeploymentStatus.READY
    assert outcome.url == "https://my-site-xyz.provider.app"
    assert vercel.get_deployment.await_count == 4
    assert sleep.await_count == 3
    assert status_writes == [
        (DeploymentStatus.BUILDING, None),
        (DeploymentStatus.READY, "https://my-site-xyz.provider.app"),
    ]

    events = [e.type for e in notification_service.history("dep_1")]
    assert events == [
        DeploymentEventType.QUEUED,
        DeploymentEventType.STATUS_UPDATED,
        DeploymentEventType.READY,
    ]

    # Terminal rows are never touched again.
    again = await reconciler.reconcile("dep_1")
    assert again.status == DeploymentStatus.READY
    assert vercel.get_deployment.await_count == 4
    assert len(status_writes) == 2


@pytest.mark.asyncio
async def test_canceled_is_terminal(reconciler, repository, vercel, queued_deployment):
    vercel.get_deployment.return_value = snapshot("CANCELED")

    outcome = await reconciler.watch("dep_1", sleep=AsyncMock())

    assert outcome.status == DeploymentStatus.CANCELED
    deployment = await repository.get_deployment_by_vercel_id("dep_1")
    assert deployment.status == DeploymentStatus.CANCELED


@pytest.mark.asyncio
async def test_provider_error_marks_deployment_failed(
    reconciler, repository, vercel, queued_deployment
):
    vercel.get_deployment.return_value = ProviderFailure(
        ProviderError("Deployment not found", status_code=404)
    )

    outcome = await reconciler.watch("dep_1", sleep=AsyncMock())

    assert outcome.terminal
    assert outcome.error == "Deployment not found"
    deployment = await repository.get_deployment_by_vercel_id("dep_1")
    assert deployment.status == DeploymentStatus.ERROR


@pytest.mark.asyncio
async def test_upstream_outage_is_retried_on_next_tick(
    reconciler, repository, vercel, queued_deployment
):
    vercel.get_deployment.side_effect = [
        ProviderFailure(UpstreamUnavailable("Vercel", "HTTP 502", 502)),
        snapshot("READY"),
    ]

    first = await reconciler.reconcile("dep_1")
    assert not first.terminal
    assert first.status == DeploymentStatus.QUEUED
    assert first.error is not None

    second = await reconciler.reconcile("dep_1")
    assert second.status == DeploymentStatus.READY


@pytest.mark.asyncio
async def test_watch_stops_after_max_attempts(reconciler, vercel, queued_deployment):
    vercel.get_deployment.return_value = snapshot("BUILDING")
    sleep = AsyncMock()

    outcome = await reconciler.watch("dep_1", max_attempts=3, sleep=sleep)

    assert outcome.status == DeploymentStatus.BUILDING
    assert not outcome.terminal
    assert vercel.get_deployment.await_count == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_watch_can_be_cancelled(reconciler, vercel, queued_deployment):
    vercel.get_deployment.return_value = snapshot("BUILDING")

    waiting = asyncio.Event()

    async def sleep(_interval):
        waiting.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(reconciler.watch("dep_1", sleep=sleep))
    await waiting.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_unknown_deployment_raises(reconciler):
    with pytest.raises(DeploymentNotFoundError):
        await reconciler.reconcile("dep_missing")


@pytest.mark.asyncio
async def test_watch_uses_configured_limits(
    repository, vercel, notification_service, queued_deployment
):
    reconciler = DeploymentReconciler(
        repository, vercel, notification_service, interval=0.25, max_attempts=2
    )
    vercel.get_deployment.return_value = snapshot("BUILDING")
    sleep = AsyncMock()

    await reconciler.watch("dep_1", sleep=sleep)

    assert vercel.get_deployment.await_count == 2
    sleep.assert_awaited_once_with(0.25)


@pytest.mark.asyncio
async def test_missing_ready_state_never_moves_status_backwards(
    reconciler, repository, vercel, queued_deployment, status_writes
):
    vercel.get_deployment.side_effect = [snapshot("BUILDING"), snapshot(None)]

    await reconciler.reconcile("dep_1")
    outcome = await reconciler.reconcile("dep_1")

    assert outcome.status == DeploymentStatus.BUILDING
    assert not outcome.changed
    deployment = await repository.get_deployment_by_vercel_id("dep_1")
    assert deployment.status == DeploymentStatus.BUILDING
    assert status_writes == [(DeploymentStatus.BUILDING, None)]


@pytest.mark.asyncio
async def test_ready_without_url_normalizes_stored_url(
    reconciler, repository, vercel, queued_deployment
):
    vercel.get_deployment.return_value = snapshot("READY", url=None)

    outcome = await reconciler.reconcile("dep_1")

    assert outcome.url == "https://my-site-xyz.provider.app"
    deployment = await repository.get_deployment_by_vercel_id("dep_1")
    assert deployment.url == "https://my-site-xyz.provider.app"
