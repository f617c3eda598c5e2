from fastapi import APIRouter

from config.settings import settings
from services.airtable_client import MAX_BATCH_SIZE, PAGE_SIZE
from utils.dates import utc_now_iso

router = APIRouter(prefix="/meta", tags=["Meta"])


def make_meta(source: str) -> dict:
    return {"source": source, "version": settings.APP_VERSION, "generated_at": utc_now_iso()}


@router.get("/health")
def health():
    return {
        "status": "ok",
        "airtable_configured": bool(settings.AIRTABLE_API_KEY and settings.AIRTABLE_BASE_ID),
        "meta": make_meta("meta"),
    }


@router.get("/limits")
def limits():
    return {
        "max_batch_size": MAX_BATCH_SIZE,
        "page_size": PAGE_SIZE,
        "cache_ttl_seconds": settings.CACHE_TTL_SECONDS,
        "meta": make_meta("meta"),
    }
