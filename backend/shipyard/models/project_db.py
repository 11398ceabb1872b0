from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from shipyard.database import Base


class ProjectDB(Base):
    """A GitHub repository linked to a Vercel project for one user."""

    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_projects_user_name"),)

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)  # Vercel project name, lowercase
    github_repo = Column(String, nullable=False, index=True)  # "owner/repo"
    framework = Column(String, nullable=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class DeploymentDB(Base):
    """A single Vercel deployment of a project."""

    __tablename__ = "deployments"

    id = Column(String, primary_key=True, index=True)
    vercel_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="QUEUED")
    url = Column(String, nullable=True)
    project_id = Column(
        String,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
