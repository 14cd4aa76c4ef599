"""
API response schemas for the search, webhook and reader endpoints.
"""
from typing import Optional
from pydantic import BaseModel, Field

from bizintel.schemas.companies import CompanyLead, EnrichedCompetitor


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    details: Optional[list[dict]] = None


class SearchResponse(BaseModel):
    success: bool = True
    message: str = "Search request initiated - companies will appear as they are found"
    timestamp: str
    sessionId: str


class ReceiveCompaniesResponse(BaseModel):
    """Standard lead webhook response."""
    success: bool = True
    message: str = "Company received successfully"
    received: int = 0
    added: int = 0
    total: int = 0
    timestamp: str


class EnrichmentWebhookResponse(BaseModel):
    success: bool = True
    message: str
    companyName: Optional[str] = None
    jobCount: Optional[int] = None


class CompaniesResponse(BaseModel):
    companies: list[CompanyLead] = Field(default_factory=list)
    count: int = 0
    timestamp: str


class EnrichedCompetitorsResponse(BaseModel):
    success: bool = True
    competitors: list[EnrichedCompetitor] = Field(default_factory=list)
    count: int = 0
    timestamp: str


class EnrichSelectedResponse(BaseModel):
    success: bool = True
    message: str = "Selected companies sent for enrichment"
    companiesSent: int = 0
    errors: list[str] = Field(default_factory=list)
    timestamp: str


class ClearedResponse(BaseModel):
    success: bool = True
    cleared: str
    timestamp: str
