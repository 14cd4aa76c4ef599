"""
Webhook endpoints - receive asynchronous callbacks from Clay.

Three tables call us back:
- the search table posts candidate leads to /receive-companies
- the main enrichment table posts one profile per company to /clay-results/main
- the jobs table posts job postings per company to /clay-results/jobs

Guards (in order, each off unless configured):
1. Rate limiting (per callback source and IP)
2. Signature validation (HMAC of the raw body)
3. Redelivery dedup (payload hash window), checked only once the payload
   parsed, and released again when the store write fails so a retry lands
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from bizintel.api.webhook_sources import (
    PayloadError,
    parse_company_leads,
    parse_jobs_update,
    parse_main_enrichment,
)
from bizintel.config import get_settings
from bizintel.schemas.api_responses import (
    EnrichmentWebhookResponse,
    ErrorResponse,
    ReceiveCompaniesResponse,
)
from bizintel.schemas.webhook_payloads import ClayRecordPayload
from bizintel.storage.factory import get_company_store, get_enriched_store
from bizintel.storage.repositories import CompanyStore, EnrichedCompetitorStore
from bizintel.utils.dedup import is_duplicate_delivery, release_delivery
from bizintel.utils.rate_limiter import check_callback_rate_limit
from bizintel.utils.webhook_signatures import compute_payload_hash, validate_webhook_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhook", tags=["webhooks"])


class Callback:
    """A guarded, decoded Clay callback."""

    def __init__(self, source: str, payload: Any, payload_hash: str):
        self.source = source
        self.payload = payload
        self.payload_hash = payload_hash

    async def is_redelivery(self) -> bool:
        return await is_duplicate_delivery(
            self.source, self.payload_hash, get_settings().webhook_dedup_window_seconds,
        )

    async def release(self) -> None:
        await release_delivery(
            self.source, self.payload_hash, get_settings().webhook_dedup_window_seconds,
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _enforce_rate_limit(source: str, request: Request) -> None:
    """Check the per-source, per-IP limit and raise 429 if exceeded."""
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return
    client_ip = request.client.host if request.client else "unknown"
    allowed, retry_after = await check_callback_rate_limit(
        source, client_ip, settings.rate_limit_per_minute,
    )
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after or 60)},
        )


def _validate_signature(source: str, request: Request, body: bytes) -> None:
    """Validate webhook signature and raise 401 if invalid."""
    if not validate_webhook_request(request.headers, body):
        client_ip = request.client.host if request.client else "unknown"
        logger.warning("Invalid webhook signature: source=%s ip=%s", source, client_ip)
        raise HTTPException(status_code=401, detail="Invalid webhook signature")


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON")


async def _read_callback(source: str, request: Request) -> Callback:
    """Run the rate-limit and signature guards and decode the body."""
    await _enforce_rate_limit(source, request)

    body = await request.body()
    _validate_signature(source, request, body)
    return Callback(source, _parse_json(body), compute_payload_hash(body))


def _record_payload(payload: Any, kind: str) -> ClayRecordPayload:
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=400,
            detail={
                "error": f"Invalid {kind} data format",
                "message": "Expected a single company object",
            },
        )
    return ClayRecordPayload.model_validate(payload)


@router.api_route(
    "/receive-companies",
    methods=["POST", "PUT"],
    response_model=ReceiveCompaniesResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def receive_companies_webhook(
    request: Request,
    store: CompanyStore = Depends(get_company_store),
):
    """
    Candidate leads from the search table. Accepts a single company object,
    {"CompetitiveCompanies": [...]}, or a bare array. Clay has used PUT for
    the same callback, so both methods land here.
    """
    callback = await _read_callback("receive_companies", request)

    try:
        leads = parse_company_leads(callback.payload)
    except PayloadError as e:
        logger.warning("Invalid company data received: %s %s", e.message, e.details)
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid company data format",
                "message": e.message,
                "details": e.details,
            },
        )

    if await callback.is_redelivery():
        return ReceiveCompaniesResponse(
            message="Duplicate delivery ignored",
            total=await store.count(),
            timestamp=_now_iso(),
        )

    try:
        added = await store.add_many(leads)
        total = await store.count()
    except Exception as e:
        await callback.release()
        logger.error("Lead webhook storage error: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Webhook processing failed", "message": str(e)},
        )

    message = (
        "Company received successfully" if len(leads) == 1
        else f"{len(leads)} companies received successfully"
    )
    logger.info("Received %d companies via %s (total %d)", len(leads), request.method, total)
    return ReceiveCompaniesResponse(
        message=message,
        received=len(leads),
        added=added,
        total=total,
        timestamp=_now_iso(),
    )


@router.get("/receive-companies")
async def receive_companies_info(store: CompanyStore = Depends(get_company_store)):
    """Liveness check Clay's table setup can hit before wiring the HTTP action."""
    return {
        "message": "Webhook endpoint is working",
        "methods": ["POST", "PUT", "GET"],
        "description": "This endpoint receives company data from Clay.com",
        "companiesReceived": await store.count(),
    }


@router.post("/clay-results")
async def clay_results_webhook(request: Request):
    """Legacy results hook from the first Clay table. Logged and acknowledged only."""
    callback = await _read_callback("clay_results", request)
    logger.info("Received legacy Clay results payload (%s)", type(callback.payload).__name__)
    return {"success": True, "message": "Results received successfully"}


@router.post("/clay-results/main", response_model=EnrichmentWebhookResponse)
async def clay_main_enrichment_webhook(
    request: Request,
    store: EnrichedCompetitorStore = Depends(get_enriched_store),
):
    """Main enrichment row: funding, headcount, features, pricing, customers..."""
    callback = await _read_callback("clay_main", request)
    record = _record_payload(callback.payload, "main enrichment")

    competitor = parse_main_enrichment(record)
    if competitor is None:
        logger.warning("Received main enrichment data without Company_Name - skipping")
        return EnrichmentWebhookResponse(
            success=False,
            message="No Company_Name found in main enrichment data",
        )

    if await callback.is_redelivery():
        return EnrichmentWebhookResponse(
            message="Duplicate delivery ignored",
            companyName=competitor.companyName,
        )

    try:
        await store.add(competitor)
    except Exception as e:
        await callback.release()
        logger.error(
            "Error storing main enrichment data: %s", str(e),
            exc_info=True, extra={"company_name": competitor.companyName},
        )
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to store main enrichment data", "message": str(e)},
        )

    return EnrichmentWebhookResponse(
        message="Main enrichment data received and stored successfully",
        companyName=competitor.companyName,
    )


@router.post("/clay-results/jobs", response_model=EnrichmentWebhookResponse)
async def clay_jobs_webhook(
    request: Request,
    store: EnrichedCompetitorStore = Depends(get_enriched_store),
):
    """Job postings for one company, delivered separately from the main row."""
    callback = await _read_callback("clay_jobs", request)
    record = _record_payload(callback.payload, "jobs")

    jobs = parse_jobs_update(record)
    if jobs is None:
        logger.warning("Received jobs data without Company_Name - skipping")
        return EnrichmentWebhookResponse(
            success=False,
            message="No Company_Name found in jobs data",
        )

    if await callback.is_redelivery():
        return EnrichmentWebhookResponse(
            message="Duplicate delivery ignored",
            companyName=jobs.companyName,
            jobCount=len(jobs.jobTitles),
        )

    try:
        await store.update_jobs(jobs)
    except Exception as e:
        await callback.release()
        logger.error(
            "Error updating jobs data: %s", str(e),
            exc_info=True, extra={"company_name": jobs.companyName},
        )
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to update jobs data", "message": str(e)},
        )

    return EnrichmentWebhookResponse(
        message="Jobs data received and updated successfully",
        companyName=jobs.companyName,
        jobCount=len(jobs.jobTitles),
    )
