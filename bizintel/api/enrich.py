"""
Enrichment request - sends the leads the user picked back to Clay.
Profiles arrive later on /api/webhook/clay-results/main and /jobs.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from bizintel.schemas.api_responses import EnrichSelectedResponse, ErrorResponse
from bizintel.schemas.webhook_payloads import EnrichSelectedRequest
from bizintel.services.clay import ClayWebhookError, send_enrichment_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["enrichment"])


@router.post(
    "/enrich-selected",
    response_model=EnrichSelectedResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def enrich_selected(payload: EnrichSelectedRequest):
    if not payload.companies:
        raise HTTPException(status_code=400, detail="No companies selected for enrichment")

    try:
        await send_enrichment_request(payload.companies, payload.originalQuery, payload.mode)
    except ClayWebhookError as e:
        logger.error("Enrichment request failed: %s", str(e), extra={"count": len(payload.companies)})
        raise HTTPException(
            status_code=502,
            detail={"error": "Enrichment failed", "message": str(e)},
        )

    return EnrichSelectedResponse(
        companiesSent=len(payload.companies),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
