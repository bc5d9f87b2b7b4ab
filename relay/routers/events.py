"""
Events Router
=============
GET /events keeps a text/event-stream open and relays every broadcast frame.
The subscriber is removed when the client disconnects (Starlette cancels the
stream) or when the broadcaster closes it on shutdown.
"""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from relay.dependencies import get_broadcaster
from relay.services.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


async def event_stream(broadcaster: EventBroadcaster) -> AsyncIterator[str]:
    subscriber = broadcaster.subscribe()
    try:
        # Flush headers to the client right away
        yield "\n"
        async for frame in subscriber:
            yield frame
    finally:
        broadcaster.unsubscribe(subscriber)


@router.get("/events")
async def events(broadcaster: EventBroadcaster = Depends(get_broadcaster)):
    return StreamingResponse(
        event_stream(broadcaster),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
