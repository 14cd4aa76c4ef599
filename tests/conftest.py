"""
Test configuration and fixtures.
Every test gets a fresh in-memory store and settings rebuilt from a clean
environment. Mocks all external services (Clay, Redis).
"""
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from bizintel.config import get_settings
from bizintel.storage.factory import set_backend
from bizintel.storage.memory import MemoryBackend
from bizintel.storage.repositories import CompanyStore, EnrichedCompetitorStore

_ENV_KEYS = (
    "STORAGE_BACKEND",
    "WEBHOOK_SIGNING_KEY",
    "WEBHOOK_DEDUP_WINDOW_SECONDS",
    "RATE_LIMIT_ENABLED",
    "ALLOWED_ORIGINS",
    "SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point storage at tmp_path, drop hardening env vars, rebuild Settings."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def memory_backend():
    """Process backend for the duration of one test."""
    backend = MemoryBackend()
    set_backend(backend)
    yield backend
    set_backend(None)


@pytest.fixture
def company_store(memory_backend):
    return CompanyStore(memory_backend)


@pytest.fixture
def enriched_store(memory_backend):
    return EnrichedCompetitorStore(memory_backend)


@pytest.fixture
def client():
    """TestClient over a fresh app. Logging config is left to pytest."""
    from bizintel.main import create_app
    with patch("bizintel.main.configure_logging"):
        app = create_app()
    return TestClient(app)


@pytest.fixture
def mock_redis():
    """Mock for async Redis - prevents real Redis calls in tests."""
    with patch("bizintel.utils.dedup.get_redis") as mock:
        redis_mock = AsyncMock()
        redis_mock.set = AsyncMock(return_value=True)
        redis_mock.ping = AsyncMock(return_value=True)
        mock.return_value = redis_mock
        yield redis_mock


class FakeRedis:
    """Dict-backed stand-in covering the SET NX / DELETE calls dedup makes."""

    def __init__(self):
        self.keys = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.keys:
            return None
        self.keys[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.keys.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis():
    """Stateful Redis double so redelivery behaviour can be exercised end to end."""
    redis = FakeRedis()
    with patch("bizintel.utils.dedup.get_redis", new_callable=AsyncMock, return_value=redis):
        yield redis


@pytest.fixture
def mock_clay_search():
    """Mock for send_search_request as imported by the search router."""
    with patch("bizintel.api.search.send_search_request", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def mock_clay_enrichment():
    """Mock for send_enrichment_request as imported by the enrichment router."""
    with patch("bizintel.api.enrich.send_enrichment_request", new_callable=AsyncMock) as mock:
        mock.return_value = None
        yield mock


@pytest.fixture
def sample_lead():
    return {
        "Company_Name": "Acme Analytics",
        "search_query": "retail analytics platforms",
        "why_relevant": "Sells dashboards to retailers",
        "niche_focus": "Retail",
        "source": "clay",
        "linkedinURL": "https://www.linkedin.com/company/acme-analytics",
    }


@pytest.fixture
def sample_main_enrichment():
    """Main enrichment row using Clay's underscore column names."""
    return {
        "Company_Name": "Acme Analytics",
        "Source": "acme.io",
        "LinkedIn_Company_URL": "https://www.linkedin.com/company/acme-analytics",
        "Total_Funding_Raised": "$25M",
        "Employee_Count": "1,250",
        "Employee_Growth": "14.5%",
        "Product_Features": "Dashboards, Alerts, Forecasting",
        "Pricing_Plans": "Starter | Pro | Enterprise",
        "Customer_Names": "Globex, Initech",
        "Industry": "Software",
        "Description": "Retail analytics",
        "Sales_Contact_Email": "sales@acme.io",
        "Integrations": "Salesforce;HubSpot",
        "Company_Revenue": "$60,000,000",
        "Products_Services": ["Analytics", "Consulting"],
        "Product_Roadmap": "AI forecasting in Q3",
        "Search Query": "retail analytics platforms",
    }
