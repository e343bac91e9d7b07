"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (phone controller, call event bridge)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from observability import logger
from session.controller import CallIntegrationController

from server.routes import register_routes


def create_app(
    *,
    config: AppConfig | None = None,
    controller: CallIntegrationController | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with an injected controller
    - Environment-specific setup
    - ASGI server compatibility
    """
    config = config or AppConfig.load_from_env()
    logger.configure(enabled=config.enable_json_logs, level=config.log_level)

    # One controller per process
    controller = controller or CallIntegrationController(config=config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await controller.shutdown()

    app = FastAPI(title="Phone Integration API", lifespan=lifespan)

    app.state.config = config
    app.state.controller = controller
    # Webhooks share the runtime's dedup cache with SDK call events
    app.state.call_event_bridge = controller.runtime.event_bridge

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app

