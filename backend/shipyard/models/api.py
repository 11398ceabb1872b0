from __future__ import annotations

from pydantic import BaseModel, Field

from .github import GitHubRepository
from .project import Deployment, DeploymentStatus, Project, ProjectSummary
from .vercel import VercelDomain


class DeployRequest(BaseModel):
    repo_name: str = Field(..., min_length=1, max_length=100)
    repo_id: int
    repo_full_name: str = Field(..., pattern=r"^[^/\s]+/[^/\s]+$")
    framework: str | None = Field(default=None, max_length=64)
    branch: str | None = Field(default=None, max_length=255)


class DeployResponse(BaseModel):
    success: bool = True
    deployment_id: str
    vercel_deployment_id: str | None = None
    project_name: str


class ProjectListResponse(BaseModel):
    """Response for listing user projects."""

    projects: list[ProjectSummary] = Field(default_factory=list)


class ProjectDeploymentsResponse(BaseModel):
    project: Project | None = None
    deployments: list[Deployment] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool = True


class DomainRequest(BaseModel):
    domain: str = Field(..., min_length=1, max_length=253)


class DomainResponse(BaseModel):
    success: bool = True
    domain: VercelDomain


class DomainListResponse(BaseModel):
    domains: list[VercelDomain] = Field(default_factory=list)


class DeploymentStatusResponse(BaseModel):
    """Outcome of one reconciliation tick."""

    vercel_deployment_id: str
    status: DeploymentStatus
    url: str | None = None
    terminal: bool
    error: str | None = None


class DeploymentStatusUpdate(BaseModel):
    status: DeploymentStatus
    url: str | None = None


class DeploymentUpdateResponse(BaseModel):
    success: bool = True
    deployment: Deployment


class RepositoryListResponse(BaseModel):
    repos: list[GitHubRepository] = Field(default_factory=list)


class WebhookResponse(BaseModel):
    message: str
    deployment_id: str | None = None
    vercel_deployment_id: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None = None
    image: str | None = None
    github_linked: bool = False
