from __future__ import annotations

from fastapi import APIRouter

from shipyard.dependencies import CurrentUser, DeployServiceDep, ReconcilerDep
from shipyard.exceptions import ShipyardError
from shipyard.models.api import (
    DeploymentStatusResponse,
    DeploymentStatusUpdate,
    DeploymentUpdateResponse,
)
from shipyard.routes.errors import to_http_exception

router = APIRouter(prefix="/deployments", tags=["deployments"])


@router.get("/{vercel_id}", response_model=DeploymentStatusResponse)
async def poll_deployment(
    vercel_id: str,
    reconciler: ReconcilerDep,
    current_user: CurrentUser,
    wait: bool = False,
) -> DeploymentStatusResponse:
    """Run one reconciliation tick; clients call this on their own interval.

    With ``wait=true`` the request keeps polling until the deployment settles
    or the configured attempt limit runs out.
    """
    try:
        if wait:
            outcome = await reconciler.watch(vercel_id, user_id=current_user.id)
        else:
            outcome = await reconciler.reconcile(vercel_id, user_id=current_user.id)
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc

    return DeploymentStatusResponse(
        vercel_deployment_id=outcome.vercel_id,
        status=outcome.status,
        url=outcome.url,
        terminal=outcome.terminal,
        error=outcome.error,
    )


@router.patch("/{vercel_id}/status", response_model=DeploymentUpdateResponse)
async def update_deployment_status(
    vercel_id: str,
    payload: DeploymentStatusUpdate,
    service: DeployServiceDep,
    current_user: CurrentUser,
) -> DeploymentUpdateResponse:
    try:
        deployment = await service.record_status(
            current_user.id, vercel_id, payload.status, payload.url
        )
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    return DeploymentUpdateResponse(deployment=deployment)
