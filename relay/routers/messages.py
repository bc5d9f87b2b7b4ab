"""
Messages Router — Thin HTTP layer
==================================
Lists messages of a conversation and sends outbound messages, optionally
translated first.
"""

import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, Query

from relay.dependencies import ServiceContainer, get_services
from relay.errors import MissingFieldError, TranslationError
from relay.models.request_models import SendMessageRequest
from relay.routers.responses import error_response, upstream_response
from relay.services.translation_service import build_send_prompt

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/messages")
async def list_messages(phoneNumberId: Optional[str] = None,
                        participants: Optional[List[str]] = Query(default=None),
                        pageToken: Optional[str] = None,
                        limit: int = 50,
                        services: ServiceContainer = Depends(get_services)):
    try:
        upstream = await services.openphone.list_messages(
            phone_number_id=phoneNumberId,
            participants=participants,
            page_token=pageToken,
            limit=limit,
        )
    except MissingFieldError as e:
        return error_response(400, str(e))
    except httpx.HTTPError as e:
        logger.error(f"Error fetching messages: {e}")
        return error_response(500, "Failed to load messages")
    return upstream_response(upstream)


@router.post("/messages")
async def send_message(body: SendMessageRequest,
                       services: ServiceContainer = Depends(get_services)):
    """
    Sends a message through OpenPhone.
    Validates and resolves the sender before translating, so a bad request
    never reaches a translation back-end or the provider.
    """
    if not body.text or not body.to:
        return error_response(400, "text and to are required")

    try:
        # Resolve sender first: fails with 400 when neither body nor env provides one
        services.openphone.build_message_payload(body.text, body.to, body.from_number, body.user_id)
    except MissingFieldError as e:
        return error_response(400, str(e))

    text = body.text
    if body.target_lang:
        try:
            text = await services.translation.translate(
                body.text,
                body.target_lang,
                source_lang=body.source_lang or "auto",
                prompt=build_send_prompt(body.target_lang),
                strict=bool(body.strict),
            )
        except TranslationError as e:
            return error_response(500, "Translation failed", provider=e.provider, details=str(e))

    try:
        upstream = await services.openphone.send_message(
            text, body.to, from_number=body.from_number, user_id=body.user_id,
        )
    except httpx.HTTPError as e:
        logger.error(f"Error sending message: {e}")
        return error_response(500, "Failed to send message")
    return upstream_response(upstream)
