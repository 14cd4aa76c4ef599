"""
Reader endpoints - the UI polls these while Clay fills the shared store.

- GET/DELETE /api/stream-companies          - leads of the current search (JSON or SSE)
- GET/DELETE /api/enriched-competitors      - enriched profiles
- GET /api/enriched-competitors/export      - CSV snapshot of the profiles
"""
import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from bizintel.config import get_settings
from bizintel.schemas.api_responses import (
    ClearedResponse,
    CompaniesResponse,
    EnrichedCompetitorsResponse,
)
from bizintel.services.csv_export import competitors_to_csv
from bizintel.storage.factory import get_company_store, get_enriched_store
from bizintel.storage.repositories import CompanyStore, EnrichedCompetitorStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["companies"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


async def company_event_stream(
    store: CompanyStore,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: float = 1.0,
    keepalive_seconds: float = 30.0,
) -> AsyncIterator[str]:
    """
    Poll the lead store and emit SSE frames:
    initial (current leads), new_company (one per new lead),
    reset (store was cleared by a new search), keepalive (after a quiet period).
    """
    seen: set[str] = set()
    try:
        companies = await store.get_all()
    except Exception as e:
        logger.error("SSE initial read failed: %s", str(e), exc_info=True)
        companies = []

    if companies:
        yield _sse({"type": "initial", "companies": [c.model_dump() for c in companies]})
    seen.update(c.Company_Name for c in companies)
    last_sent = time.monotonic()

    while not await is_disconnected():
        await asyncio.sleep(poll_interval)
        try:
            current = await store.get_all()
        except Exception as e:
            logger.warning("SSE poll failed: %s", str(e))
            continue

        sent = False
        names = {c.Company_Name for c in current}
        if seen - names:
            seen.clear()
            yield _sse({"type": "reset"})
            sent = True

        for company in current:
            if company.Company_Name in seen:
                continue
            seen.add(company.Company_Name)
            yield _sse({"type": "new_company", "company": company.model_dump()})
            sent = True

        now = time.monotonic()
        if sent:
            last_sent = now
        elif now - last_sent >= keepalive_seconds:
            yield _sse({"type": "keepalive"})
            last_sent = now

    logger.info("SSE client disconnected")


@router.get("/stream-companies", response_model=CompaniesResponse)
async def get_companies(
    request: Request,
    store: CompanyStore = Depends(get_company_store),
):
    """Current leads as JSON, or an SSE stream when the client asks for text/event-stream."""
    if "text/event-stream" in request.headers.get("accept", ""):
        settings = get_settings()
        return StreamingResponse(
            company_event_stream(
                store,
                request.is_disconnected,
                poll_interval=settings.stream_poll_interval_seconds,
                keepalive_seconds=settings.stream_keepalive_seconds,
            ),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    try:
        companies = await store.get_all()
    except Exception as e:
        logger.error("Error reading companies: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to retrieve companies", "message": str(e)},
        )

    return CompaniesResponse(
        companies=companies,
        count=len(companies),
        timestamp=_now_iso(),
    )


@router.delete("/stream-companies", response_model=ClearedResponse)
async def clear_companies(store: CompanyStore = Depends(get_company_store)):
    try:
        await store.clear()
    except Exception as e:
        logger.error("Error clearing companies: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to clear companies", "message": str(e)},
        )
    return ClearedResponse(cleared="companies", timestamp=_now_iso())


@router.get("/enriched-competitors", response_model=EnrichedCompetitorsResponse)
async def get_enriched_competitors(
    store: EnrichedCompetitorStore = Depends(get_enriched_store),
):
    try:
        competitors = await store.get_all()
    except Exception as e:
        logger.error("Error fetching enriched competitors: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "success": False,
                "error": "Failed to retrieve enriched competitors",
                "message": str(e),
            },
        )

    return EnrichedCompetitorsResponse(
        competitors=competitors,
        count=len(competitors),
        timestamp=_now_iso(),
    )


@router.get("/enriched-competitors/export")
async def export_enriched_competitors(
    store: EnrichedCompetitorStore = Depends(get_enriched_store),
):
    """Download the enriched profiles as CSV."""
    try:
        competitors = await store.get_all()
    except Exception as e:
        logger.error("Error exporting enriched competitors: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to export enriched competitors", "message": str(e)},
        )

    content = competitors_to_csv(competitors)
    filename = f"enriched_competitors_{datetime.now(timezone.utc).strftime('%Y%m%d')}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/enriched-competitors", response_model=ClearedResponse)
async def clear_enriched_competitors(
    store: EnrichedCompetitorStore = Depends(get_enriched_store),
):
    try:
        await store.clear()
    except Exception as e:
        logger.error("Error clearing enriched competitors: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to clear enriched competitors", "message": str(e)},
        )
    return ClearedResponse(cleared="enriched_competitors", timestamp=_now_iso())
