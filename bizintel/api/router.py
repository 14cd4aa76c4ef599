"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from bizintel.api.search import router as search_router
from bizintel.api.webhooks import router as webhooks_router
from bizintel.api.companies import router as companies_router
from bizintel.api.enrich import router as enrich_router
from bizintel.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(search_router)
api_router.include_router(webhooks_router)
api_router.include_router(companies_router)
api_router.include_router(enrich_router)
api_router.include_router(health_router)
