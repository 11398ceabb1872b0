from __future__ import annotations

from fastapi import APIRouter

from . import auth, deployments, github, health, projects, webhooks, ws

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(github.router)
api_router.include_router(projects.router)
api_router.include_router(deployments.router)
api_router.include_router(webhooks.router)

ws_router = ws.router

__all__ = ["api_router", "ws_router"]
