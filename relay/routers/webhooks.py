"""
Webhooks Router — Thin HTTP layer
==================================
Receives provider webhooks (e.g. POST /webhooks/openphone) and pushes message
events to every connected /events client under the provider's name.
No signature verification; always acknowledged with 200.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request

from relay.dependencies import get_broadcaster
from relay.services.broadcaster import EventBroadcaster
from relay.utils.helpers import is_message_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/{provider}")
async def receive_webhook(provider: str, request: Request,
                          broadcaster: EventBroadcaster = Depends(get_broadcaster)):
    try:
        event = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Webhook {provider}: body is not JSON ({e})")
        return {"ok": True}

    if isinstance(event, dict) and is_message_event(event):
        logger.info(f"Webhook {provider}: {event.get('type')}")
        broadcaster.broadcast(provider, event)
    else:
        logger.info(f"Webhook {provider}: ignored non-message event")

    return {"ok": True}
