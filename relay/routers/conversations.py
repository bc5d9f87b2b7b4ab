"""
Conversations Router — Thin HTTP layer
=======================================
Lists one-to-one OpenPhone conversations, each with its latest message.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends

from relay.dependencies import ServiceContainer, get_services
from relay.routers.responses import error_response, upstream_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/conversations")
async def list_conversations(pageToken: Optional[str] = None, maxResults: int = 40,
                             services: ServiceContainer = Depends(get_services)):
    try:
        upstream = await services.openphone.list_conversations(page_token=pageToken, max_results=maxResults)
    except httpx.HTTPError as e:
        logger.error(f"Error fetching conversations: {e}")
        return error_response(500, "Failed to load conversations")
    return upstream_response(upstream)
