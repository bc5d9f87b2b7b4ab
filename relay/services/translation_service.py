"""
Translation Router
==================
One translate() contract over interchangeable back-ends (DeepL, LibreTranslate,
OpenAI). The back-end is chosen once at startup from TRANSLATE_PROVIDER.

Translation is best-effort: any failure returns the original text, except in
strict mode where the failure is raised to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage

from relay.config import Settings
from relay.errors import TranslationConfigError, TranslationError
from relay.services.llm_client import get_chat_model
from relay.utils.helpers import get_nested_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    target_lang: str
    source_lang: str = "auto"
    prompt: str = ""

    @property
    def auto_source(self) -> bool:
        return not self.source_lang or self.source_lang.lower() == "auto"


def build_send_prompt(target_lang: str) -> str:
    """Instruction attached to translations made on the send-message path."""
    return (
        f"Translate to {target_lang}, preserve meaning and tone, do not translate "
        f"Markdown code blocks, reply only with the translation."
    )


class Translator:
    """Strategy interface. Subclasses raise on failure; the router decides the fallback."""

    name = "base"

    async def translate(self, request: TranslationRequest) -> str:
        raise NotImplementedError


class DeepLTranslator(Translator):
    name = "deepl"

    def __init__(self, http_client: httpx.AsyncClient, api_key: Optional[str], url: str):
        self.http = http_client
        self.api_key = api_key
        self.url = url

    async def translate(self, request: TranslationRequest) -> str:
        if not self.api_key:
            raise TranslationConfigError("DEEPL_API_KEY not configured", provider=self.name)

        form = {
            "text": request.text,
            "target_lang": request.target_lang.upper(),
        }
        if not request.auto_source:
            form["source_lang"] = request.source_lang.upper()

        response = await self.http.post(
            self.url,
            headers={"Authorization": f"DeepL-Auth-Key {self.api_key}"},
            data=form,
        )
        response.raise_for_status()
        data = response.json()
        return get_nested_value(data, ["translations", 0, "text"]) or request.text


class LibreTranslator(Translator):
    name = "libre"

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, api_key: Optional[str] = None):
        self.http = http_client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    async def translate(self, request: TranslationRequest) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "q": request.text,
            "source": "auto" if request.auto_source else request.source_lang.lower(),
            "target": request.target_lang.lower(),
        }

        response = await self.http.post(f"{self.base_url}/translate", headers=headers, json=payload)
        response.raise_for_status()
        data = response.json()
        translated = data.get("translatedText") if isinstance(data, dict) else None
        return translated or request.text


class OpenAITranslator(Translator):
    """
    LLM translation through the OpenAI chat model.
    The model is built on first use so a missing OPENAI_API_KEY only fails
    the translation that needs it.
    """

    name = "openai"

    def __init__(self, settings: Settings, chat_model: Any = None,
                 model_factory: Callable[[Settings], Any] = get_chat_model):
        self.settings = settings
        self.model = settings.openai_model
        self._chat_model = chat_model
        self._model_factory = model_factory

    @property
    def configured(self) -> bool:
        return self._chat_model is not None or bool(self.settings.openai_api_key)

    def _get_model(self):
        if self._chat_model is None:
            self._chat_model = self._model_factory(self.settings)
        return self._chat_model

    @staticmethod
    def build_messages(request: TranslationRequest) -> list:
        system_prompt = (
            f"You are a careful translator. Translate into {request.target_lang}. "
            f"Preserve meaning and tone. Do not translate text inside Markdown "
            f"fenced code blocks. Reply with the translation only."
        )
        user_prompt = (
            f"{request.prompt or ''}\n\n"
            f"Target language: {request.target_lang}\n"
            f"Text:\n{request.text}"
        )
        return [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

    async def translate(self, request: TranslationRequest) -> str:
        if not self.configured:
            raise TranslationConfigError("OPENAI_API_KEY not configured", provider=self.name)

        result = await self._get_model().ainvoke(self.build_messages(request))
        translated = _extract_text(getattr(result, "content", None))
        return translated or request.text


def _extract_text(content: Any) -> str:
    """First text part of a chat completion, stripped. Empty string if the shape is unexpected."""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        for part in content:
            if isinstance(part, str) and part.strip():
                return part.strip()
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                return part["text"].strip()
    return ""


# --- PROVIDER SELECTION ---

PROVIDERS = ("DEEPL", "LIBRE", "OPENAI")


def build_translator(settings: Settings, http_client: httpx.AsyncClient,
                     openai_translator: Optional[OpenAITranslator] = None) -> Translator:
    """Pick the back-end once from TRANSLATE_PROVIDER. Unknown values fall back to LIBRE."""
    selector = (settings.translate_provider or "LIBRE").upper()
    if selector not in PROVIDERS:
        logger.warning(f"Unknown TRANSLATE_PROVIDER '{selector}', using LIBRE")
        selector = "LIBRE"

    if selector == "DEEPL":
        return DeepLTranslator(http_client, settings.deepl_api_key, settings.deepl_url)
    if selector == "OPENAI":
        return openai_translator or OpenAITranslator(settings)
    return LibreTranslator(http_client, settings.libre_url, settings.libre_api_key)


class TranslationRouter:
    """Holds the selected back-end and applies the fallback policy."""

    def __init__(self, translator: Translator):
        self.translator = translator

    @property
    def provider(self) -> str:
        return self.translator.name

    async def translate(self, text: str, target_lang: Optional[str],
                        source_lang: Optional[str] = "auto", prompt: Optional[str] = "",
                        strict: bool = False) -> str:
        """
        Translate text with the configured back-end.

        Args:
            strict: raise TranslationError on failure instead of returning the
                    original text.
        Returns:
            translated text, or text unchanged when text/target_lang is empty
            or (non-strict) the back-end fails.
        """
        if not text or not target_lang:
            return text

        request = TranslationRequest(
            text=text,
            target_lang=target_lang,
            source_lang=source_lang or "auto",
            prompt=prompt or "",
        )

        try:
            return await self.translator.translate(request)
        except Exception as e:
            if strict:
                logger.error(f"Strict translation failed ({self.provider}): {e}")
                if isinstance(e, TranslationError):
                    if e.provider is None:
                        e.provider = self.provider
                    raise
                raise TranslationError(str(e) or e.__class__.__name__, provider=self.provider) from e
            logger.error(f"Translation error ({self.provider}), sending original text: {e}")
            return text
