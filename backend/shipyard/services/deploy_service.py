from __future__ import annotations

from dataclasses import dataclass

from shipyard.clients.vercel import VercelClient
from shipyard.exceptions import DeployTriggerFailed, ProjectNotFoundError, ProviderConflict
from shipyard.logging_config import get_logger
from shipyard.models.project import (
    Deployment,
    DeploymentEvent,
    DeploymentEventType,
    DeploymentStatus,
    Project,
    ProjectSummary,
)
from shipyard.models.vercel import VercelDeployment, VercelDomain
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.notification_service import NotificationService

logger = get_logger(__name__)


def canonical_project_name(repo_name: str) -> str:
    """Vercel project name for a repository: its bare name, lower-cased."""
    return repo_name.strip().rsplit("/", 1)[-1].lower()


@dataclass(slots=True)
class DeployResult:
    deployment_id: str
    vercel_deployment_id: str | None
    project_name: str
    status: DeploymentStatus


class DeployService:
    """Keeps local Project/Deployment rows consistent with Vercel.

    Writes to the database and to Vercel are not wrapped in a transaction.
    Partial failures (project row created, trigger refused) are left in place;
    repeating the same call converges because project lookup-or-create is
    idempotent and an existing Vercel project is tolerated.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        vercel: VercelClient,
        notification_service: NotificationService,
        default_framework: str = "nextjs",
        default_branch: str = "main",
    ):
        self.repository = repository
        self.vercel = vercel
        self.notification_service = notification_service
        self.default_framework = default_framework
        self.default_branch = default_branch

    async def deploy(
        self,
        user_id: str,
        repo_name: str,
        repo_id: int,
        repo_full_name: str,
        framework: str | None = None,
        branch: str | None = None,
    ) -> DeployResult:
        project_name = canonical_project_name(repo_name)
        branch = branch or self.default_branch
        log = logger.bind(user_id=user_id, project=project_name)

        project = await self.repository.get_project_by_name(user_id, project_name)
        if project is None:
            await self._ensure_remote_project(project_name, repo_full_name, framework)
            project, created = await self.repository.get_or_create_project(
                user_id=user_id,
                name=project_name,
                github_repo=repo_full_name,
                framework=framework or self.default_framework,
            )
            if created:
                log.info("project_created", project_id=project.id, repo=repo_full_name)

        result = await self.vercel.trigger_deployment(project.name, repo_id, branch)
        if not result.ok:
            log.error("deployment_trigger_failed", error=str(result.error))
            raise DeployTriggerFailed(project.name, result.error)

        deployment = await self._record_deployment(project, result.value)
        return DeployResult(
            deployment_id=deployment.id,
            vercel_deployment_id=deployment.vercel_id,
            project_name=project.name,
            status=deployment.status,
        )

    async def redeploy_from_push(self, project: Project, branch: str) -> DeployResult:
        """Redeploy an existing project by ``owner/repo`` (push webhook path)."""
        result = await self.vercel.create_deployment_from_repo(
            project.name,
            project.github_repo,
            branch,
            project.framework,
        )
        if not result.ok:
            logger.error(
                "push_redeploy_failed", project=project.name, error=str(result.error)
            )
            raise DeployTriggerFailed(project.name, result.error)

        deployment = await self._record_deployment(project, result.value)
        return DeployResult(
            deployment_id=deployment.id,
            vercel_deployment_id=deployment.vercel_id,
            project_name=project.name,
            status=deployment.status,
        )

    async def delete_project(self, user_id: str, name: str) -> bool:
        """Delete a project on Vercel, then locally. Returns whether a local row existed.

        Vercel goes first so that a failure there leaves the local records intact.
        """
        project_name = canonical_project_name(name)
        (await self.vercel.delete_project(project_name)).unwrap()

        project = await self.repository.get_project_by_name(user_id, project_name)
        if project is None:
            logger.info("project_delete_no_local_row", user_id=user_id, project=project_name)
            return False

        await self.repository.delete_project(project.id)
        logger.info("project_deleted", user_id=user_id, project=project_name, project_id=project.id)
        return True

    async def list_projects(self, user_id: str) -> list[ProjectSummary]:
        return await self.repository.list_user_projects(user_id)

    async def get_project_deployments(
        self, user_id: str, name: str, limit: int = 10
    ) -> tuple[Project | None, list[Deployment]]:
        project = await self.repository.get_project_by_name(user_id, canonical_project_name(name))
        if project is None:
            return None, []
        return project, await self.repository.list_deployments(project.id, limit=limit)

    async def add_domain(self, user_id: str, name: str, domain: str) -> VercelDomain:
        project = await self._require_project(user_id, name)
        result = await self.vercel.add_domain(project.name, domain)
        if result.ok:
            logger.info("domain_added", project=project.name, domain=domain)
        return result.unwrap()

    async def list_domains(self, user_id: str, name: str) -> list[VercelDomain]:
        project = await self._require_project(user_id, name)
        return (await self.vercel.list_domains(project.name)).unwrap()

    async def remove_domain(self, user_id: str, name: str, domain: str) -> None:
        project = await self._require_project(user_id, name)
        (await self.vercel.remove_domain(project.name, domain)).unwrap()
        logger.info("domain_removed", project=project.name, domain=domain)

    async def record_status(
        self,
        user_id: str,
        vercel_id: str,
        status: DeploymentStatus,
        url: str | None = None,
    ) -> Deployment:
        """Explicitly set a deployment's status, for callers that poll Vercel themselves."""
        deployment = await self.repository.get_deployment_by_vercel_id(vercel_id, user_id=user_id)
        updated = await self.repository.update_deployment_status(deployment.id, status, url)
        await self.notification_service.publish_event(
            DeploymentEvent(
                deployment_id=vercel_id,
                type=DeploymentEventType.STATUS_UPDATED,
                message=f"Status changed to {status.value}",
                payload={"status": status.value, "url": updated.url},
            )
        )
        return updated

    async def _require_project(self, user_id: str, name: str) -> Project:
        project_name = canonical_project_name(name)
        project = await self.repository.get_project_by_name(user_id, project_name)
        if project is None:
            raise ProjectNotFoundError(project_name)
        return project

    async def _ensure_remote_project(
        self, name: str, repo_full_name: str, framework: str | None
    ) -> None:
        result = await self.vercel.create_project(
            name, repo_full_name, framework or self.default_framework
        )
        if result.ok:
            logger.info("vercel_project_created", project=name, vercel_project_id=result.value.id)
        elif isinstance(result.error, ProviderConflict):
            logger.info("vercel_project_exists", project=name)
        else:
            # The deployment call can create the project implicitly, so carry on.
            logger.warning(
                "vercel_project_create_failed", project=name, error=str(result.error)
            )

    async def _record_deployment(
        self, project: Project, vercel_deployment: VercelDeployment
    ) -> Deployment:
        status = DeploymentStatus.QUEUED if vercel_deployment.id else DeploymentStatus.ERROR
        deployment = await self.repository.create_deployment(
            project_id=project.id,
            vercel_id=vercel_deployment.id,
            status=status,
            url=vercel_deployment.url,
        )
        await self.repository.touch_project(project.id)

        if vercel_deployment.id is None:
            logger.error(
                "deployment_missing_vercel_id", project=project.name, deployment_id=deployment.id
            )
            return deployment

        logger.info(
            "deployment_queued",
            project=project.name,
            deployment_id=deployment.id,
            vercel_id=vercel_deployment.id,
        )
        await self.notification_service.publish_event(
            DeploymentEvent(
                deployment_id=vercel_deployment.id,
                type=DeploymentEventType.QUEUED,
                message=f"Deployment queued! ID: {vercel_deployment.id}",
                payload={"status": status.value, "project": project.name},
            )
        )
        return deployment
