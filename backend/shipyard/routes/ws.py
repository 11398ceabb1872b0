from __future__ import annotations

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from shipyard.dependencies import AsyncDBSession, NotificationServiceDep
from shipyard.exceptions import DeploymentNotFoundError
from shipyard.repositories.project_repository import ProjectRepository
from shipyard.services.auth_service import auth_service

router = APIRouter()


@router.websocket("/ws/deployments/{vercel_id}")
async def deployment_updates(
    websocket: WebSocket,
    vercel_id: str,
    notification_service: NotificationServiceDep,
    db: AsyncDBSession,
    token: str | None = None,
) -> None:
    """Stream deployment events: the buffered history first, then live ones."""
    try:
        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
        user = await auth_service.get_user_from_token(token, db)
        await ProjectRepository(db).get_deployment_by_vercel_id(vercel_id, user_id=user.id)
    except (HTTPException, DeploymentNotFoundError):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    subscription = await notification_service.subscribe(vercel_id)

    for event in subscription.history:
        await websocket.send_json(event.model_dump(mode="json"))

    try:
        while True:
            event = await subscription.queue.get()
            await websocket.send_json(event.model_dump(mode="json"))
    except WebSocketDisconnect:
        return
    finally:
        await notification_service.unsubscribe(vercel_id, subscription.queue)
