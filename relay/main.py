import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from relay.config import Settings
from relay.dependencies import ServiceContainer
from relay.logging_config import setup_logging
from relay.routers import conversations, events, health, messages, translate, webhooks
from relay.routers.responses import error_response, validation_message

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None,
               services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI app.
    Services are created at startup (unless injected) and closed at shutdown.
    """
    if settings is None:
        settings = services.settings if services else Settings.from_env()

    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = ServiceContainer(settings)

        logger.info("Environment check:")
        logger.info(f"   OPENPHONE_API: {settings.openphone_api}")
        logger.info(f"   OPENPHONE_API_KEY: {'configured' if settings.openphone_api_key else 'missing'}")
        logger.info(f"   OPENPHONE_FROM: {settings.openphone_from or 'missing'}")
        logger.info(f"   TRANSLATE_PROVIDER: {settings.translate_provider}")
        for warning in settings.missing_warnings():
            logger.warning(warning)

        try:
            yield
        finally:
            await app.state.services.aclose()
            app.state.services = None

    app = FastAPI(title="openphone-relay", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = validation_message(exc.errors())
        logger.warning(f"Rejected {request.method} {request.url.path}: {message}")
        return error_response(400, message)

    # Include Routers
    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(translate.router)
    app.include_router(events.router)
    app.include_router(webhooks.router)

    return app
