"""
Tests for bizintel/api/webhooks.py - Clay callback endpoints.

Covers:
- Lead callback in all three shapes (object, wrapped bulk, bare array) via POST and PUT
- Malformed lead payloads (400 with details)
- Main enrichment and jobs callbacks, including merge and placeholder behaviour
- Signature validation, redelivery dedup and rate limiting guards
- Storage failures
"""
import hashlib
import hmac
import json
from unittest.mock import AsyncMock, patch

import pytest

from bizintel.config import get_settings
from bizintel.utils.locks import LockTimeoutError

LEADS_URL = "/api/webhook/receive-companies"
MAIN_URL = "/api/webhook/clay-results/main"
JOBS_URL = "/api/webhook/clay-results/jobs"


# ---------------------------------------------------------------------------
# /receive-companies
# ---------------------------------------------------------------------------


class TestReceiveCompanies:
    def test_single_object(self, client, sample_lead):
        resp = client.post(LEADS_URL, json=sample_lead)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Company received successfully"
        assert body["received"] == 1
        assert body["added"] == 1
        assert body["total"] == 1

    def test_wrapped_bulk(self, client, sample_lead):
        payload = {"CompetitiveCompanies": [
            sample_lead,
            {**sample_lead, "Company_Name": "Globex"},
            {**sample_lead, "Company_Name": "Initech"},
        ]}
        resp = client.post(LEADS_URL, json=payload)
        assert resp.status_code == 200
        assert resp.json()["message"] == "3 companies received successfully"
        assert resp.json()["total"] == 3

    def test_bare_array_via_put(self, client, sample_lead):
        resp = client.put(LEADS_URL, json=[sample_lead])
        assert resp.status_code == 200
        assert resp.json()["added"] == 1

    def test_duplicates_not_stored_twice(self, client, sample_lead):
        client.post(LEADS_URL, json=sample_lead)
        resp = client.post(LEADS_URL, json=[sample_lead])
        assert resp.json()["added"] == 0
        assert resp.json()["total"] == 1

    def test_leads_visible_to_reader(self, client, sample_lead):
        client.post(LEADS_URL, json=sample_lead)
        companies = client.get("/api/stream-companies").json()["companies"]
        assert companies[0]["Company_Name"] == "Acme Analytics"

    def test_missing_required_field(self, client, sample_lead):
        resp = client.post(LEADS_URL, json={**sample_lead, "search_query": "  "})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid company data format"
        assert body["details"][0]["missing"] == ["search_query"]
        # Nothing stored
        assert client.get("/api/stream-companies").json()["count"] == 0

    def test_one_bad_entry_rejects_all(self, client, sample_lead):
        resp = client.post(LEADS_URL, json=[sample_lead, {"search_query": "x"}])
        assert resp.status_code == 400
        assert client.get("/api/stream-companies").json()["count"] == 0

    def test_empty_bulk_is_400(self, client):
        resp = client.post(LEADS_URL, json={"CompetitiveCompanies": []})
        assert resp.status_code == 400

    def test_invalid_json(self, client):
        resp = client.post(LEADS_URL, content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid JSON"

    def test_storage_failure_is_500(self, client, sample_lead):
        with patch(
            "bizintel.storage.repositories.CompanyStore.add_many",
            new_callable=AsyncMock,
            side_effect=LockTimeoutError("busy"),
        ):
            resp = client.post(LEADS_URL, json=sample_lead)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Webhook processing failed"

    def test_get_reports_liveness(self, client, sample_lead):
        client.post(LEADS_URL, json=sample_lead)
        resp = client.get(LEADS_URL)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Webhook endpoint is working"
        assert resp.json()["companiesReceived"] == 1


class TestLegacyClayResults:
    def test_acknowledges(self, client):
        resp = client.post("/api/webhook/clay-results", json={"rows": []})
        assert resp.status_code == 200
        assert resp.json()["success"] is True


# ---------------------------------------------------------------------------
# /clay-results/main and /clay-results/jobs
# ---------------------------------------------------------------------------


class TestMainEnrichment:
    def test_stores_profile(self, client, sample_main_enrichment):
        resp = client.post(MAIN_URL, json=sample_main_enrichment)
        assert resp.status_code == 200
        assert resp.json()["companyName"] == "Acme Analytics"

        competitors = client.get("/api/enriched-competitors").json()["competitors"]
        assert len(competitors) == 1
        assert competitors[0]["employeeCount"] == 1250
        assert competitors[0]["tier"] == "enterprise"

    def test_redelivery_merges(self, client, sample_main_enrichment):
        client.post(MAIN_URL, json=sample_main_enrichment)
        client.post(MAIN_URL, json={
            "Company_Name": "Acme Analytics",
            "Customer_Names": "Initech, Hooli",
            "Description": "",
        })
        [acme] = client.get("/api/enriched-competitors").json()["competitors"]
        assert acme["customerNames"] == ["Globex", "Initech", "Hooli"]
        assert acme["description"] == "Retail analytics"

    def test_missing_company_name(self, client):
        resp = client.post(MAIN_URL, json={"domain": "acme.io"})
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert client.get("/api/enriched-competitors").json()["count"] == 0

    def test_array_body_is_400(self, client, sample_main_enrichment):
        resp = client.post(MAIN_URL, json=[sample_main_enrichment])
        assert resp.status_code == 400

    def test_storage_failure_is_500(self, client, sample_main_enrichment):
        with patch(
            "bizintel.storage.repositories.EnrichedCompetitorStore.add",
            new_callable=AsyncMock,
            side_effect=LockTimeoutError("busy"),
        ):
            resp = client.post(MAIN_URL, json=sample_main_enrichment)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to store main enrichment data"


class TestJobsEnrichment:
    def test_updates_existing_profile(self, client, sample_main_enrichment):
        client.post(MAIN_URL, json=sample_main_enrichment)
        resp = client.post(JOBS_URL, json={
            "Company_Name": "Acme Analytics",
            "Job_Titles": "Account Executive\nData Engineer",
            "Job_URLs": "https://jobs.example.com/1\nhttps://jobs.example.com/2",
        })
        assert resp.status_code == 200
        assert resp.json()["jobCount"] == 2

        [acme] = client.get("/api/enriched-competitors").json()["competitors"]
        assert acme["jobTitles"] == ["Account Executive", "Data Engineer"]
        assert acme["jobDescriptions"] == ["", ""]
        assert acme["employeeCount"] == 1250

    def test_jobs_before_main(self, client, sample_main_enrichment):
        client.post(JOBS_URL, json={"Company_Name": "Acme Analytics", "Job_Titles": "AE"})
        client.post(MAIN_URL, json=sample_main_enrichment)

        competitors = client.get("/api/enriched-competitors").json()["competitors"]
        assert len(competitors) == 1
        assert competitors[0]["jobTitles"] == ["AE"]
        assert competitors[0]["domain"] == "acme.io"

    def test_missing_company_name(self, client):
        resp = client.post(JOBS_URL, json={"Job_Titles": "AE"})
        assert resp.status_code == 200
        assert resp.json()["success"] is False


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def _sign(key: str, body: bytes) -> str:
    return "sha256=" + hmac.new(key.encode(), body, hashlib.sha256).hexdigest()


class TestSignatureGuard:
    @pytest.fixture(autouse=True)
    def signing_key(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_SIGNING_KEY", "test-secret")
        get_settings.cache_clear()

    def test_valid_signature_accepted(self, client, sample_lead):
        body = json.dumps(sample_lead).encode()
        resp = client.post(LEADS_URL, content=body, headers={
            "Content-Type": "application/json",
            "X-Webhook-Signature": _sign("test-secret", body),
        })
        assert resp.status_code == 200

    def test_missing_signature_rejected(self, client, sample_lead):
        resp = client.post(LEADS_URL, json=sample_lead)
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid webhook signature"

    def test_wrong_signature_rejected(self, client, sample_main_enrichment):
        body = json.dumps(sample_main_enrichment).encode()
        resp = client.post(MAIN_URL, content=body, headers={
            "Content-Type": "application/json",
            "X-Webhook-Signature": _sign("other-secret", body),
        })
        assert resp.status_code == 401


class TestRedeliveryGuard:
    @pytest.fixture(autouse=True)
    def dedup_window(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_DEDUP_WINDOW_SECONDS", "300")
        get_settings.cache_clear()

    def test_redelivery_acknowledged_without_storing(self, client, mock_redis, sample_lead):
        mock_redis.set = AsyncMock(side_effect=[True, None])
        first = client.post(LEADS_URL, json=sample_lead)
        second = client.post(LEADS_URL, json=sample_lead)
        assert first.json()["added"] == 1
        assert second.status_code == 200
        assert second.json()["message"] == "Duplicate delivery ignored"
        assert second.json()["total"] == 1

    def test_malformed_redelivery_still_rejected(self, client, fake_redis):
        first = client.post(LEADS_URL, json={"Company_Name": "Acme"})
        second = client.post(LEADS_URL, json={"Company_Name": "Acme"})
        assert first.status_code == 400
        assert second.status_code == 400
        assert second.json()["error"] == "Invalid company data format"
        assert fake_redis.keys == {}

    def test_retry_after_lead_storage_failure_is_stored(self, client, fake_redis, sample_lead):
        with patch(
            "bizintel.storage.repositories.CompanyStore.add_many",
            new_callable=AsyncMock,
            side_effect=LockTimeoutError("busy"),
        ):
            first = client.post(LEADS_URL, json=sample_lead)
        retry = client.post(LEADS_URL, json=sample_lead)
        assert first.status_code == 500
        assert retry.status_code == 200
        assert retry.json()["added"] == 1
        assert client.get("/api/stream-companies").json()["count"] == 1

    def test_retry_after_main_storage_failure_is_stored(self, client, fake_redis, sample_main_enrichment):
        with patch(
            "bizintel.storage.repositories.EnrichedCompetitorStore.add",
            new_callable=AsyncMock,
            side_effect=LockTimeoutError("busy"),
        ):
            first = client.post(MAIN_URL, json=sample_main_enrichment)
        retry = client.post(MAIN_URL, json=sample_main_enrichment)
        assert first.status_code == 500
        assert retry.status_code == 200
        assert retry.json()["message"] == "Main enrichment data received and stored successfully"
        assert client.get("/api/enriched-competitors").json()["count"] == 1

    def test_retry_after_jobs_storage_failure_is_stored(self, client, fake_redis):
        payload = {"Company_Name": "Acme Analytics", "Job_Titles": "AE"}
        with patch(
            "bizintel.storage.repositories.EnrichedCompetitorStore.update_jobs",
            new_callable=AsyncMock,
            side_effect=LockTimeoutError("busy"),
        ):
            first = client.post(JOBS_URL, json=payload)
        retry = client.post(JOBS_URL, json=payload)
        assert first.status_code == 500
        assert retry.json()["message"] == "Jobs data received and updated successfully"
        [acme] = client.get("/api/enriched-competitors").json()["competitors"]
        assert acme["jobTitles"] == ["AE"]

    def test_stored_delivery_stays_marked(self, client, fake_redis, sample_main_enrichment):
        client.post(MAIN_URL, json=sample_main_enrichment)
        resp = client.post(MAIN_URL, json=sample_main_enrichment)
        assert resp.json()["message"] == "Duplicate delivery ignored"
        assert len(fake_redis.keys) == 1

    def test_redis_down_still_ingests(self, client, sample_main_enrichment):
        with patch("bizintel.utils.dedup.get_redis", side_effect=Exception("connection refused")):
            resp = client.post(MAIN_URL, json=sample_main_enrichment)
        assert resp.status_code == 200
        assert client.get("/api/enriched-competitors").json()["count"] == 1


class TestRateLimitGuard:
    @pytest.fixture(autouse=True)
    def rate_limit(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        get_settings.cache_clear()

    def test_limited_request_gets_429(self, client, sample_lead):
        with patch(
            "bizintel.api.webhooks.check_callback_rate_limit",
            new_callable=AsyncMock,
            return_value=(False, 42),
        ):
            resp = client.post(LEADS_URL, json=sample_lead)
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "42"
        assert resp.json()["error"] == "Rate limit exceeded"

    def test_allowed_request_passes(self, client, sample_lead):
        with patch(
            "bizintel.api.webhooks.check_callback_rate_limit",
            new_callable=AsyncMock,
            return_value=(True, None),
        ):
            resp = client.post(LEADS_URL, json=sample_lead)
        assert resp.status_code == 200

    def test_limit_is_per_callback_source(self, client, sample_main_enrichment):
        with patch(
            "bizintel.api.webhooks.check_callback_rate_limit",
            new_callable=AsyncMock,
            return_value=(True, None),
        ) as mock_check:
            client.post(MAIN_URL, json=sample_main_enrichment)
        source, client_ip, limit = mock_check.await_args.args
        assert source == "clay_main"
        assert client_ip == "testclient"
        assert limit == get_settings().rate_limit_per_minute
