from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from shipyard.dependencies import CurrentUser, DeployServiceDep
from shipyard.exceptions import ShipyardError
from shipyard.logging_config import get_logger
from shipyard.models.api import (
    DeployRequest,
    DeployResponse,
    DomainListResponse,
    DomainRequest,
    DomainResponse,
    ProjectDeploymentsResponse,
    ProjectListResponse,
    SuccessResponse,
)
from shipyard.routes.errors import to_http_exception

logger = get_logger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("/deploy", response_model=DeployResponse)
async def deploy_repository(
    payload: DeployRequest,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> DeployResponse:
    try:
        result = await service.deploy(
            user_id=current_user.id,
            repo_name=payload.repo_name,
            repo_id=payload.repo_id,
            repo_full_name=payload.repo_full_name,
            framework=payload.framework,
            branch=payload.branch,
        )
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc

    return DeployResponse(
        deployment_id=result.deployment_id,
        vercel_deployment_id=result.vercel_deployment_id,
        project_name=result.project_name,
    )


@router.get("", response_model=ProjectListResponse)
async def list_deployed_projects(
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> ProjectListResponse:
    """List the current user's projects with their latest deployment."""
    projects = await service.list_projects(current_user.id)
    return ProjectListResponse(projects=projects)


@router.get("/{name}/deployments", response_model=ProjectDeploymentsResponse)
async def list_project_deployments(
    name: str,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> ProjectDeploymentsResponse:
    project, deployments = await service.get_project_deployments(current_user.id, name)
    return ProjectDeploymentsResponse(project=project, deployments=deployments)


@router.delete("/{name}", response_model=SuccessResponse)
async def delete_project(
    name: str,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> SuccessResponse:
    try:
        await service.delete_project(current_user.id, name)
    except ShipyardError as exc:
        logger.error("project_delete_failed", project=name, error=str(exc))
        raise to_http_exception(exc) from exc
    return SuccessResponse()


@router.post("/{name}/domain", response_model=DomainResponse)
async def add_domain(
    name: str,
    payload: DomainRequest,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> DomainResponse:
    domain = payload.domain.strip().lower()
    if not domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Domain is required",
        )
    try:
        record = await service.add_domain(current_user.id, name, domain)
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    return DomainResponse(domain=record)


@router.get("/{name}/domain", response_model=DomainListResponse)
async def list_domains(
    name: str,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> DomainListResponse:
    try:
        domains = await service.list_domains(current_user.id, name)
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    return DomainListResponse(domains=domains)


@router.delete("/{name}/domain", response_model=SuccessResponse)
async def remove_domain(
    name: str,
    payload: DomainRequest,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> SuccessResponse:
    try:
        await service.remove_domain(current_user.id, name, payload.domain.strip().lower())
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    return SuccessResponse()
