"""
Clay outbound client - pushes search and enrichment requests into Clay's
"pull in data from a webhook" table. Clay works through the rows on its own
schedule and calls our webhooks back; nothing here waits for results.

Search requests are fire-and-forget: failures are logged and reported as a
boolean so the UI can start polling regardless. Enrichment requests raise
ClayWebhookError so the caller can tell the user nothing was sent.
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from bizintel.config import get_settings

logger = logging.getLogger(__name__)

# Phrases users type that Clay's table can use as structured filters
_INDUSTRY_PATTERN = re.compile(r"in the (\w+(?:\s+\w+)*) industry", re.IGNORECASE)
_HQ_PATTERN = re.compile(r"HQed in ([^,]+)", re.IGNORECASE)
_LOCATION_PATTERN = re.compile(r"\bin (?!the\b)([^,]+)", re.IGNORECASE)
_SIZE_PATTERN = re.compile(r"(\d+(?:,\d+)*)\s*(?:people|employees)", re.IGNORECASE)


class ClayWebhookError(Exception):
    """Raised when Clay did not accept an enrichment request."""
    pass


def new_session_id() -> str:
    """Millisecond timestamp string, matching the ids the front end already logs."""
    return str(int(time.time() * 1000))


def extract_filters_from_query(query: str) -> dict[str, str]:
    """Pull industry, location and company-size hints out of free text."""
    filters: dict[str, str] = {}

    industry = _INDUSTRY_PATTERN.search(query)
    if industry:
        filters["industry"] = industry.group(1).strip()

    location = _HQ_PATTERN.search(query) or _LOCATION_PATTERN.search(query)
    if location:
        filters["location"] = location.group(1).strip()

    size = _SIZE_PATTERN.search(query)
    if size:
        filters["companySize"] = size.group(1)

    return filters


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _post_to_clay(url: str, payload: dict, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(url, json=payload)


async def send_search_request(
    query: str,
    mode: str,
    filters: Optional[dict[str, Any]] = None,
    session_id: Optional[str] = None,
) -> bool:
    """
    Forward a search to Clay. Returns True if Clay accepted the row.
    Never raises for transport or HTTP errors.
    """
    settings = get_settings()
    session_id = session_id or new_session_id()
    payload = {
        "searchQuery": query,
        "searchMode": mode,
        "searchFilters": {**extract_filters_from_query(query), **(filters or {})},
        "timestamp": _timestamp(),
        "source": settings.app_source_tag,
        "userId": "anonymous",
        "sessionId": session_id,
    }

    started = time.monotonic()
    try:
        response = await _post_to_clay(
            settings.clay_search_webhook_url, payload, settings.clay_timeout_seconds,
        )
    except httpx.HTTPError as e:
        logger.error(
            "Clay search request failed: %s", str(e),
            extra={"session_id": session_id},
        )
        return False

    elapsed_ms = int((time.monotonic() - started) * 1000)
    if response.is_success:
        logger.info(
            "Search request sent to Clay in %dms", elapsed_ms,
            extra={"session_id": session_id, "status_code": response.status_code},
        )
        return True

    logger.warning(
        "Clay search webhook returned non-success status %d", response.status_code,
        extra={"session_id": session_id, "status_code": response.status_code},
    )
    return False


async def send_enrichment_request(
    companies: list[dict[str, Any]],
    original_query: str,
    mode: str,
) -> None:
    """
    Send the selected leads back to Clay for full enrichment.
    Raises ClayWebhookError if the request fails or Clay rejects it.
    """
    settings = get_settings()
    payload = {
        "type": "enrichment_request",
        "selectedCompanies": companies,
        "originalQuery": original_query,
        "mode": mode,
        "timestamp": _timestamp(),
        "source": settings.app_source_tag,
    }

    try:
        response = await _post_to_clay(
            settings.clay_enrichment_webhook_url, payload, settings.clay_timeout_seconds,
        )
    except httpx.HTTPError as e:
        raise ClayWebhookError(f"Clay enrichment request failed: {e}") from e

    if not response.is_success:
        raise ClayWebhookError(f"Clay enrichment error: {response.status_code}")

    logger.info(
        "Sent %d companies to Clay for enrichment", len(companies),
        extra={"count": len(companies), "status_code": response.status_code},
    )
