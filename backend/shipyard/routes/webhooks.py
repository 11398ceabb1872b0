from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Request, status

from shipyard.dependencies import WebhookServiceDep
from shipyard.exceptions import ShipyardError
from shipyard.logging_config import get_logger
from shipyard.models.api import WebhookResponse
from shipyard.routes.errors import to_http_exception

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/github", response_model=WebhookResponse)
async def github_webhook(
    request: Request,
    service: WebhookServiceDep,
    x_hub_signature_256: Annotated[str | None, Header()] = None,
    x_github_event: Annotated[str | None, Header()] = None,
) -> WebhookResponse:
    """Redeploy on pushes to a repository's default branch."""
    body = await request.body()
    try:
        outcome = await service.handle(x_github_event, body, x_hub_signature_256)
    except ShipyardError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception("webhook_failed", event=x_github_event)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    return WebhookResponse(
        message=outcome.message,
        deployment_id=outcome.deployment_id,
        vercel_deployment_id=outcome.vercel_deployment_id,
    )
