from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from shipyard.clients.vercel import VercelClient
from shipyard.exceptions import UpstreamUnavailable
from shipyard.logging_config import get_logger
from shipyard.models.project import (
    DeploymentEvent,
    DeploymentEventType,
    DeploymentStatus,
)
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.notification_service import NotificationService

logger = get_logger(__name__)

READY_STATE_MAP = {
    "QUEUED": DeploymentStatus.QUEUED,
    "INITIALIZING": DeploymentStatus.BUILDING,
    "BUILDING": DeploymentStatus.BUILDING,
    "READY": DeploymentStatus.READY,
    "ERROR": DeploymentStatus.ERROR,
    "CANCELED": DeploymentStatus.CANCELED,
}


def map_ready_state(ready_state: str | None) -> DeploymentStatus:
    return READY_STATE_MAP.get((ready_state or "").upper(), DeploymentStatus.QUEUED)


# Non-terminal states only ever move forward.
STATUS_RANK = {
    DeploymentStatus.QUEUED: 0,
    DeploymentStatus.BUILDING: 1,
}


def public_url(url: str | None) -> str | None:
    if not url:
        return None
    if url.startswith(("https://", "http://")):
        return url
    return f"https://{url}"


@dataclass(slots=True)
class ReconcileResult:
    vercel_id: str
    status: DeploymentStatus
    url: str | None = None
    changed: bool = False
    error: str | None = None

    @property
    def terminal(self) -> bool:
        return self.status.is_terminal


class DeploymentReconciler:
    """Pulls a deployment's state from Vercel and folds it into the local row.

    There is no scheduler here: callers drive the cadence, either by calling
    ``reconcile`` once per request or by awaiting ``watch``.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        vercel: VercelClient,
        notification_service: NotificationService,
        interval: float = 3.0,
        max_attempts: int | None = None,
    ):
        self.repository = repository
        self.vercel = vercel
        self.notification_service = notification_service
        self.interval = interval
        self.max_attempts = max_attempts

    async def reconcile(self, vercel_id: str, user_id: str | None = None) -> ReconcileResult:
        """Run a single reconciliation tick for ``vercel_id``.

        A status is written only when it moves past the stored one, and
        nothing is written once the stored status is terminal.
        """
        deployment = await self.repository.get_deployment_by_vercel_id(vercel_id, user_id=user_id)
        if deployment.status.is_terminal:
            return ReconcileResult(vercel_id, deployment.status, deployment.url)

        log = logger.bind(vercel_id=vercel_id, deployment_id=deployment.id)

        result = await self.vercel.get_deployment(vercel_id)
        if not result.ok:
            if isinstance(result.error, UpstreamUnavailable):
                log.warning("reconcile_upstream_unavailable", error=str(result.error))
                return ReconcileResult(
                    vercel_id, deployment.status, deployment.url, error=str(result.error)
                )

            log.error("reconcile_provider_error", error=str(result.error))
            await self.repository.update_deployment_status(deployment.id, DeploymentStatus.ERROR)
            await self._publish(
                vercel_id,
                DeploymentEventType.FAILED,
                f"Error: {result.error}",
                status=DeploymentStatus.ERROR,
            )
            return ReconcileResult(
                vercel_id,
                DeploymentStatus.ERROR,
                deployment.url,
                changed=True,
                error=str(result.error),
            )

        snapshot = result.value
        status = map_ready_state(snapshot.ready_state)

        if status == DeploymentStatus.READY:
            url = public_url(snapshot.url or deployment.url)
            await self.repository.update_deployment_status(deployment.id, status, url)
            log.info("deployment_ready", url=url)
            await self._publish(
                vercel_id,
                DeploymentEventType.READY,
                f"Deployment Complete! Your site is live at: {url}",
                status=status,
                url=url,
            )
            return ReconcileResult(vercel_id, status, url, changed=True)

        if status in (DeploymentStatus.ERROR, DeploymentStatus.CANCELED):
            await self.repository.update_deployment_status(deployment.id, status)
            log.warning("deployment_failed", status=status.value)
            await self._publish(
                vercel_id,
                DeploymentEventType.FAILED,
                f"Deployment {status.value.lower()}",
                status=status,
            )
            return ReconcileResult(vercel_id, status, deployment.url, changed=True)

        if STATUS_RANK[status] <= STATUS_RANK[deployment.status]:
            return ReconcileResult(vercel_id, deployment.status, deployment.url)

        await self.repository.update_deployment_status(deployment.id, status)
        log.info("deployment_status_changed", status=status.value)
        message = "Building..." if status == DeploymentStatus.BUILDING else status.value
        await self._publish(vercel_id, DeploymentEventType.STATUS_UPDATED, message, status=status)
        return ReconcileResult(vercel_id, status, deployment.url, changed=True)

    async def watch(
        self,
        vercel_id: str,
        *,
        interval: float | None = None,
        max_attempts: int | None = None,
        user_id: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> ReconcileResult:
        """Reconcile every ``interval`` seconds until a terminal state.

        Stops early after ``max_attempts`` ticks; cancelling the awaiting task
        abandons the watch between ticks.
        """
        interval = self.interval if interval is None else interval
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        attempts = 0
        while True:
            attempts += 1
            outcome = await self.reconcile(vercel_id, user_id=user_id)
            if outcome.terminal:
                return outcome
            if max_attempts is not None and attempts >= max_attempts:
                logger.warning(
                    "reconcile_watch_exhausted",
                    vercel_id=vercel_id,
                    attempts=attempts,
                    status=outcome.status.value,
                )
                return outcome
            await sleep(interval)

    async def _publish(
        self,
        vercel_id: str,
        event_type: DeploymentEventType,
        message: str,
        *,
        status: DeploymentStatus,
        url: str | None = None,
    ) -> None:
        await self.notification_service.publish_event(
            DeploymentEvent(
                deployment_id=vercel_id,
                type=event_type,
                message=message,
                payload={"status": status.value, "url": url},
            )
        )
