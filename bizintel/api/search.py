"""
Search initiator - starts a Clay search and returns immediately.
Results arrive later on /api/webhook/receive-companies.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from bizintel.schemas.api_responses import SearchResponse
from bizintel.schemas.webhook_payloads import SEARCH_MODES, SearchRequest
from bizintel.services.clay import new_session_id, send_search_request
from bizintel.storage.factory import get_company_store
from bizintel.storage.repositories import CompanyStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["search"])


@router.post("/search", response_model=SearchResponse)
async def start_search(
    payload: SearchRequest,
    store: CompanyStore = Depends(get_company_store),
):
    """
    Clear the previous session's leads and forward the query to Clay.
    Always answers 200 once the input is valid; the UI starts polling either way.
    """
    query = (payload.query or "").strip()
    mode = (payload.mode or "").strip()
    if not query or not mode:
        raise HTTPException(status_code=400, detail="Missing required fields: query and mode")
    if mode not in SEARCH_MODES:
        raise HTTPException(status_code=400, detail='Invalid mode. Must be "rfp" or "competitor"')

    session_id = new_session_id()
    try:
        await store.clear()
    except Exception as e:
        logger.error("Failed to clear companies before search: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to initiate search", "message": str(e)},
        )

    logger.info(
        "Starting %s search: %s", mode, query,
        extra={"session_id": session_id},
    )
    await send_search_request(query, mode, payload.filters, session_id)

    return SearchResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        sessionId=session_id,
    )


@router.get("/search")
async def search_info():
    return {
        "message": "Search API endpoint",
        "methods": ["POST"],
        "description": "Initiate a company search via Clay.com",
        "body": {
            "query": "string (required) - search terms",
            "mode": 'string (required) - "rfp" or "competitor"',
            "filters": "object (optional) - extra Clay search filters",
        },
    }
