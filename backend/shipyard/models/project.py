from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeploymentStatus(str, Enum):
    """Lifecycle states for a deployment, mirroring Vercel's readyState."""

    QUEUED = "QUEUED"
    BUILDING = "BUILDING"
    READY = "READY"
    ERROR = "ERROR"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {DeploymentStatus.READY, DeploymentStatus.ERROR, DeploymentStatus.CANCELED}
)


class DeploymentEventType(str, Enum):
    """Events emitted while a deployment moves through its lifecycle."""

    QUEUED = "queued"
    STATUS_UPDATED = "status_updated"
    READY = "ready"
    FAILED = "failed"


class Project(BaseModel):
    """Domain representation of a deployed repository."""

    id: str
    name: str
    github_repo: str
    framework: str | None = None
    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Deployment(BaseModel):
    id: str
    vercel_id: str | None = None
    status: DeploymentStatus = DeploymentStatus.QUEUED
    url: str | None = None
    project_id: str
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectSummary(Project):
    """Project with its most recent deployment, for dashboard listings."""

    latest_deployment: Deployment | None = None


class DeploymentEvent(BaseModel):
    """Structured event published to WebSocket subscribers."""

    deployment_id: str  # Vercel deployment id
    type: DeploymentEventType
    message: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)
