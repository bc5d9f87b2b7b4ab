from fastapi import APIRouter

from relay.utils.helpers import utc_now_iso

router = APIRouter()


@router.get("/healthz")
async def healthz():
    return {"status": "ok", "timestamp": utc_now_iso()}
