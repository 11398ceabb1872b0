from __future__ import annotations

import asyncio
from collections import OrderedDict, deque
from dataclasses import dataclass

from shipyard.logging_config import get_logger
from shipyard.models.project import DeploymentEvent, DeploymentEventType

logger = get_logger(__name__)

FINAL_EVENT_TYPES = frozenset({DeploymentEventType.READY, DeploymentEventType.FAILED})


@dataclass
class Subscription:
    queue: asyncio.Queue[DeploymentEvent]
    history: list[DeploymentEvent]


class NotificationService:
    """Fans deployment events out to WebSocket subscribers.

    Events of a live deployment are buffered so a late subscriber can replay
    them. Once a deployment publishes its final event and nobody is listening,
    its buffer moves to a small archive; the oldest archived deployments are
    evicted first.
    """

    def __init__(self, history_limit: int = 200, finished_limit: int = 100):
        self._history_limit = history_limit
        self._finished_limit = finished_limit
        self._subscribers: dict[str, list[asyncio.Queue[DeploymentEvent]]] = {}
        self._live: dict[str, deque[DeploymentEvent]] = {}
        self._finished: OrderedDict[str, list[DeploymentEvent]] = OrderedDict()
        self._lock = asyncio.Lock()

    async def subscribe(self, deployment_id: str) -> Subscription:
        queue: asyncio.Queue[DeploymentEvent] = asyncio.Queue()
        async with self._lock:
            self._subscribers.setdefault(deployment_id, []).append(queue)
            history = self._replay(deployment_id)
        return Subscription(queue=queue, history=history)

    async def unsubscribe(
        self, deployment_id: str, queue: asyncio.Queue[DeploymentEvent]
    ) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(deployment_id)
            if not subscribers or queue not in subscribers:
                return
            subscribers.remove(queue)
            if subscribers:
                return
            del self._subscribers[deployment_id]
            if self._is_finished(deployment_id):
                self._archive(deployment_id)

    async def publish_event(self, event: DeploymentEvent) -> None:
        deployment_id = event.deployment_id
        async with self._lock:
            buffer = self._live.get(deployment_id)
            if buffer is None:
                archived = self._finished.pop(deployment_id, [])
                buffer = deque(archived, maxlen=self._history_limit)
                self._live[deployment_id] = buffer
            buffer.append(event)
            subscribers = list(self._subscribers.get(deployment_id, []))
            if event.type in FINAL_EVENT_TYPES and not subscribers:
                self._archive(deployment_id)

        for queue in subscribers:
            await queue.put(event)

    def history(self, deployment_id: str) -> list[DeploymentEvent]:
        return self._replay(deployment_id)

    def tracked_deployments(self) -> int:
        """Number of deployments whose live buffer is still held."""
        return len(self._live)

    async def shutdown(self) -> None:
        async with self._lock:
            self._subscribers.clear()
            self._live.clear()
            self._finished.clear()

    def _replay(self, deployment_id: str) -> list[DeploymentEvent]:
        if deployment_id in self._live:
            return list(self._live[deployment_id])
        return list(self._finished.get(deployment_id, []))

    def _is_finished(self, deployment_id: str) -> bool:
        buffer = self._live.get(deployment_id)
        return bool(buffer) and buffer[-1].type in FINAL_EVENT_TYPES

    def _archive(self, deployment_id: str) -> None:
        buffer = self._live.pop(deployment_id, None)
        if buffer is None:
            return
        self._finished[deployment_id] = list(buffer)
        self._finished.move_to_end(deployment_id)
        while len(self._finished) > self._finished_limit:
            evicted, _ = self._finished.popitem(last=False)
            logger.debug("deployment_history_evicted", deployment_id=evicted)
