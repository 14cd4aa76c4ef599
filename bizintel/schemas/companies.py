"""
Company record schemas - what the shared store holds.

Field names mirror the Clay column names (CompanyLead) and the front end's
camelCase profile shape (EnrichedCompetitor) so records serialise straight
into the JSON the UI polls.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CompanyLead(BaseModel):
    """Unenriched candidate returned by the initial Clay search."""
    model_config = ConfigDict(extra="ignore")

    Company_Name: str
    search_query: str
    why_relevant: Optional[str] = None
    niche_focus: Optional[str] = None
    source: Optional[str] = None
    linkedinURL: Optional[str] = None


class EnrichedCompetitor(BaseModel):
    """Fully enriched company profile, keyed by companyName."""
    model_config = ConfigDict(extra="ignore")

    id: int = 0
    companyName: str
    domain: str = ""
    linkedinCompanyUrl: str = ""
    totalFundingRaised: str = ""
    employeeCount: int = 0
    percentEmployeeGrowthOverLast6Months: float = 0.0
    productFeatures: list[str] = Field(default_factory=list)
    pricingPlanSummaryResult: list[str] = Field(default_factory=list)
    customerNames: list[str] = Field(default_factory=list)
    industry: str = "Unknown"
    description: str = ""
    salesContactEmail: str = ""
    enterpriseSalesRepLinkedinUrl: str = ""
    # Parallel arrays - index i of each describes the same posting
    jobTitles: list[str] = Field(default_factory=list)
    jobUrls: list[str] = Field(default_factory=list)
    jobDescriptions: list[str] = Field(default_factory=list)
    integrationsList: list[str] = Field(default_factory=list)
    companyRevenue: int = 0
    productsAndServicesResult: list[str] = Field(default_factory=list)
    productRoadmap: str = ""
    tier: str = "startup"
    originalSearchQuery: str = ""
    enrichmentTimestamp: str = ""
    enrichmentSource: str = "clay_main_enrichment"
    updatedAt: str = ""


class JobsUpdate(BaseModel):
    """Job postings delivered separately from the main enrichment."""
    companyName: str
    jobTitles: list[str] = Field(default_factory=list)
    jobUrls: list[str] = Field(default_factory=list)
    jobDescriptions: list[str] = Field(default_factory=list)
    updatedAt: str = ""
