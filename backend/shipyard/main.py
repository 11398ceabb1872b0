from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shipyard.config import settings
from shipyard.database import engine, init_db
from shipyard.logging_config import get_logger, setup_logging
from shipyard.routes import api_router, ws_router
from shipyard.services.notification_service import NotificationService

load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()

    # One pooled client for GitHub and Vercel; provider calls carry no timeout
    # unless one is configured.
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))
    notification_service = NotificationService()

    app.state.http_client = http_client
    app.state.notification_service = notification_service

    if not settings.github_webhook_secret:
        logger.warning("webhook_signature_check_disabled")

    try:
        yield
    finally:
        await notification_service.shutdown()
        await http_client.aclose()
        await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shipyard Deployment Control Plane",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(ws_router)

    return app


app = create_app()
