from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shipyard.exceptions import DeploymentNotFoundError
from shipyard.models.project import (
    Deployment,
    DeploymentStatus,
    Project,
    ProjectSummary,
)
from shipyard.models.project_db import DeploymentDB, ProjectDB


class ProjectRepository:
    """Repository for Project and Deployment database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _project_db_to_model(self, project_db: ProjectDB) -> Project:
        """Convert database model to domain model."""
        return Project(
            id=project_db.id,
            name=project_db.name,
            github_repo=project_db.github_repo,
            framework=project_db.framework,
            user_id=project_db.user_id,
            created_at=project_db.created_at,
            updated_at=project_db.updated_at,
        )

    def _deployment_db_to_model(self, deployment_db: DeploymentDB) -> Deployment:
        return Deployment(
            id=deployment_db.id,
            vercel_id=deployment_db.vercel_id,
            status=DeploymentStatus(deployment_db.status),
            url=deployment_db.url,
            project_id=deployment_db.project_id,
            created_at=deployment_db.created_at,
        )

    async def get_project_by_name(self, user_id: str, name: str) -> Project | None:
        result = await self.session.execute(
            select(ProjectDB).where(ProjectDB.user_id == user_id, ProjectDB.name == name)
        )
        project_db = result.scalar_one_or_none()
        return self._project_db_to_model(project_db) if project_db else None

    async def find_project_by_repo(self, github_repo: str) -> Project | None:
        """Look up a project by ``owner/repo`` across all users."""
        result = await self.session.execute(
            select(ProjectDB)
            .where(ProjectDB.github_repo == github_repo)
            .order_by(ProjectDB.created_at.asc())
            .limit(1)
        )
        project_db = result.scalar_one_or_none()
        return self._project_db_to_model(project_db) if project_db else None

    async def get_or_create_project(
        self,
        user_id: str,
        name: str,
        github_repo: str,
        framework: str | None,
    ) -> tuple[Project, bool]:
        """Insert a project row, or return the row a concurrent caller inserted first.

        The unique (user_id, name) constraint is the source of truth; the
        boolean tells whether this call created the row.
        """
        project_db = ProjectDB(
            id=uuid4().hex,
            name=name,
            github_repo=github_repo,
            framework=framework,
            user_id=user_id,
        )
        self.session.add(project_db)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            existing = await self.get_project_by_name(user_id, name)
            if existing is None:
                raise
            return existing, False

        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db), True

    async def touch_project(self, project_id: str) -> None:
        result = await self.session.execute(select(ProjectDB).where(ProjectDB.id == project_id))
        project_db = result.scalar_one_or_none()
        if project_db is None:
            return
        project_db.updated_at = datetime.now(UTC)
        await self.session.commit()

    async def list_user_projects(self, user_id: str) -> list[ProjectSummary]:
        result = await self.session.execute(
            select(ProjectDB)
            .where(ProjectDB.user_id == user_id)
            .order_by(ProjectDB.updated_at.desc())
        )
        summaries: list[ProjectSummary] = []
        for project_db in result.scalars().all():
            latest = await self.list_deployments(project_db.id, limit=1)
            summaries.append(
                ProjectSummary(
                    **self._project_db_to_model(project_db).model_dump(),
                    latest_deployment=latest[0] if latest else None,
                )
            )
        return summaries

    async def list_deployments(self, project_id: str, limit: int = 10) -> list[Deployment]:
        result = await self.session.execute(
            select(DeploymentDB)
            .where(DeploymentDB.project_id == project_id)
            .order_by(DeploymentDB.created_at.desc())
            .limit(limit)
        )
        return [self._deployment_db_to_model(d) for d in result.scalars().all()]

    async def delete_project(self, project_id: str) -> None:
        # Children first: cascading deletes are not assumed to be configured.
        await self.session.execute(
            delete(DeploymentDB).where(DeploymentDB.project_id == project_id)
        )
        await self.session.execute(delete(ProjectDB).where(ProjectDB.id == project_id))
        await self.session.commit()

    async def create_deployment(
        self,
        project_id: str,
        vercel_id: str | None,
        status: DeploymentStatus,
        url: str | None = None,
    ) -> Deployment:
        deployment_db = DeploymentDB(
            id=uuid4().hex,
            vercel_id=vercel_id,
            status=status.value,
            url=url,
            project_id=project_id,
        )
        self.session.add(deployment_db)
        await self.session.commit()
        await self.session.refresh(deployment_db)
        return self._deployment_db_to_model(deployment_db)

    async def get_deployment_by_vercel_id(
        self, vercel_id: str, user_id: str | None = None
    ) -> Deployment:
        """Resolve a deployment by Vercel id, optionally restricted to an owner."""
        query = select(DeploymentDB).where(DeploymentDB.vercel_id == vercel_id)
        if user_id:
            query = query.join(ProjectDB, ProjectDB.id == DeploymentDB.project_id).where(
                ProjectDB.user_id == user_id
            )
        result = await self.session.execute(query.order_by(DeploymentDB.created_at.desc()))
        deployment_db = result.scalars().first()
        if deployment_db is None:
            raise DeploymentNotFoundError(vercel_id)
        return self._deployment_db_to_model(deployment_db)

    async def update_deployment_status(
        self,
        deployment_id: str,
        status: DeploymentStatus,
        url: str | None = None,
    ) -> Deployment:
        result = await self.session.execute(
            select(DeploymentDB).where(DeploymentDB.id == deployment_id)
        )
        deployment_db = result.scalar_one_or_none()
        if deployment_db is None:
            raise DeploymentNotFoundError(deployment_id)

        deployment_db.status = status.value
        if url:
            deployment_db.url = url
        await self.session.commit()
        await self.session.refresh(deployment_db)
        return self._deployment_db_to_model(deployment_db)
