import logging

from relay.config import Settings
from relay.errors import TranslationConfigError

logger = logging.getLogger(__name__)


def get_chat_model(settings: Settings):
    """Returns the OpenAI chat model used for LLM translation."""
    from langchain_openai import ChatOpenAI

    if not settings.openai_api_key:
        raise TranslationConfigError("OPENAI_API_KEY not configured", provider="openai")

    logger.info("Using OpenAI model: %s", settings.openai_model)

    return ChatOpenAI(
        model=settings.openai_model,
        temperature=0,
        openai_api_key=settings.openai_api_key,
    )
