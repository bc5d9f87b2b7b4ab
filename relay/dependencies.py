"""
Service container.
Built once per process by the app lifespan and torn down on shutdown.
Routers reach it through request.app.state instead of module-level singletons.
"""

import logging
from typing import Optional

import httpx
from fastapi import Request

from relay.config import Settings
from relay.services.broadcaster import EventBroadcaster
from relay.services.http_client import build_async_client
from relay.services.openphone_service import OpenPhoneService
from relay.services.translation_service import (
    OpenAITranslator,
    TranslationRouter,
    build_translator,
)

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Owns the shared HTTP client, the broadcaster and the provider services."""

    def __init__(self, settings: Settings,
                 http_client: Optional[httpx.AsyncClient] = None,
                 broadcaster: Optional[EventBroadcaster] = None,
                 openai_translator: Optional[OpenAITranslator] = None,
                 translation_router: Optional[TranslationRouter] = None):
        self.settings = settings
        self.http = http_client or build_async_client(settings)
        self.broadcaster = broadcaster or EventBroadcaster()
        self.openphone = OpenPhoneService(settings, self.http)
        # /translate always uses the LLM back-end, whatever TRANSLATE_PROVIDER says
        self.llm_translator = openai_translator or OpenAITranslator(settings)
        self.translation = translation_router or TranslationRouter(
            build_translator(settings, self.http, openai_translator=self.llm_translator)
        )
        logger.info(f"Translation provider: {self.translation.provider}")

    async def aclose(self):
        self.broadcaster.close()
        await self.http.aclose()


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.services.broadcaster
