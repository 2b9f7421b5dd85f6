"""
FastAPI application entry point.

Configures logging, middleware, routes, exception handlers and the
real-time connection manager.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskspace.core.config import settings
from taskspace.core.exceptions import register_exception_handlers
from taskspace.core.logging import configure_logging
from taskspace.core.websocket import ConnectionManager
from taskspace.routers import activity, auth, notifications, tasks, websocket, workspaces

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting TaskSpace API in %s mode", settings.ENVIRONMENT)
    yield
    logger.info("Shutting down TaskSpace API")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="TaskSpace API",
        description="Collaborative task management with real-time updates",
        version=VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # One registry per application instance; services reach it through get_broadcaster
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "version": VERSION,
        }

    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
    app.include_router(workspaces.router, prefix=f"{API_PREFIX}/workspaces", tags=["Workspaces"])
    app.include_router(tasks.router, prefix=f"{API_PREFIX}/tasks", tags=["Tasks"])
    app.include_router(activity.router, prefix=f"{API_PREFIX}/activity", tags=["Activity"])
    app.include_router(
        notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["Notifications"]
    )
    app.include_router(websocket.router, prefix=API_PREFIX, tags=["WebSocket"])

    return app


app = create_app()
