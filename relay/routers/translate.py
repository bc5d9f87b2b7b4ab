import logging

from fastapi import APIRouter, Depends

from relay.dependencies import ServiceContainer, get_services
from relay.models.request_models import TranslateRequest, TranslateResponse
from relay.routers.responses import error_response
from relay.services.translation_service import TranslationRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/translate")
async def translate_message(body: TranslateRequest,
                            services: ServiceContainer = Depends(get_services)):
    """
    Per-message translation with the LLM back-end.
    Errors are reported to the caller; there is no fallback to the original text here.
    """
    if not body.text or not body.target_lang:
        return error_response(400, "text and targetLang are required")

    translator = services.llm_translator
    if not translator.configured:
        return error_response(500, "OPENAI_API_KEY not configured", provider=translator.name)

    try:
        translated = await translator.translate(
            TranslationRequest(text=body.text, target_lang=body.target_lang, prompt=body.prompt or "")
        )
    except Exception as e:
        logger.error(f"Error translating message: {e}")
        return error_response(500, "Translation failed", provider=translator.name, details=str(e))

    return TranslateResponse(translated_text=translated, provider=translator.name,
                             model=translator.model).model_dump(by_alias=True)
