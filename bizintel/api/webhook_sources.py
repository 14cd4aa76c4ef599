"""
Clay callback parsers.
Each function normalizes a raw callback body into store records.
Kept out of webhooks.py so the handlers only deal with HTTP concerns.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bizintel.schemas.companies import CompanyLead, EnrichedCompetitor, JobsUpdate
from bizintel.schemas.webhook_payloads import ClayRecordPayload
from bizintel.services.field_parsing import (
    clean_text,
    determine_tier,
    pad_array,
    parse_float,
    parse_int,
    parse_job_array,
    parse_string_array,
)

logger = logging.getLogger(__name__)

BULK_KEY = "CompetitiveCompanies"
LEAD_FIELDS = ("Company_Name", "search_query", "why_relevant", "niche_focus", "source", "linkedinURL")
REQUIRED_LEAD_FIELDS = ("Company_Name", "search_query")


class PayloadError(ValueError):
    """Raised when a callback body cannot be turned into records."""

    def __init__(self, message: str, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


def _lead_entries(body: Any) -> list[Any]:
    """Unwrap the three shapes the lead webhook has used: object, wrapped bulk, bare array."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        if BULK_KEY in body:
            entries = body[BULK_KEY]
            if not isinstance(entries, list):
                raise PayloadError(f"{BULK_KEY} must be an array")
            return entries
        return [body]
    raise PayloadError("Payload must be a company object or an array of companies")


def parse_company_leads(body: Any) -> list[CompanyLead]:
    """
    Parse a lead callback into CompanyLead records.

    Every entry must carry Company_Name and search_query after cleanup; one bad
    entry rejects the whole payload so Clay's run log shows the failure.
    Raises PayloadError with per-entry details.
    """
    entries = _lead_entries(body)
    if not entries:
        raise PayloadError("No companies in payload")

    leads = []
    problems = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            problems.append({"index": index, "error": "entry is not an object"})
            continue

        cleaned = {name: clean_text(entry.get(name)) for name in LEAD_FIELDS}
        missing = [name for name in REQUIRED_LEAD_FIELDS if not cleaned[name]]
        if missing:
            problems.append({
                "index": index,
                "missing": missing,
                "Company_Name": cleaned["Company_Name"],
            })
            continue

        leads.append(CompanyLead(**cleaned))

    if problems:
        raise PayloadError(
            f"{len(problems)} of {len(entries)} companies are missing required fields",
            details=problems,
        )
    return leads


def parse_main_enrichment(payload: ClayRecordPayload) -> Optional[EnrichedCompetitor]:
    """
    Map a main-enrichment row onto an EnrichedCompetitor.
    Column names differ between Clay table versions; the first non-empty alias wins.
    Returns None when the row has no Company_Name.
    """
    company_name = clean_text(payload.Company_Name)
    if not company_name:
        return None

    f = payload.field
    employee_count = parse_int(f("employeeCount", "Employee_Count"))
    growth = parse_float(f("percentEmployeeGrowthOverLast6Months", "Employee_Growth"))
    revenue = parse_int(f("companyRevenue", "Company_Revenue"))

    return EnrichedCompetitor(
        companyName=company_name,
        domain=clean_text(f("Source", "domain")) or "",
        linkedinCompanyUrl=clean_text(f("linkedinCompanyUrl", "LinkedIn_Company_URL")) or "",
        totalFundingRaised=clean_text(f("totalFundingRaised", "Total_Funding_Raised")) or "",
        employeeCount=employee_count,
        percentEmployeeGrowthOverLast6Months=growth,
        productFeatures=parse_string_array(f("productFeatures", "Product_Features")),
        pricingPlanSummaryResult=parse_string_array(f("pricingPlanSummaryResult", "Pricing_Plans")),
        customerNames=parse_string_array(f("customerNames", "Customer_Names")),
        industry=clean_text(f("industry", "Industry")) or "Unknown",
        description=clean_text(f("description", "Description")) or "",
        salesContactEmail=clean_text(f("salesContactEmail", "Sales_Contact_Email")) or "",
        enterpriseSalesRepLinkedinUrl=clean_text(
            f("enterpriseSalesRepLinkedinUrl", "Sales_Rep_LinkedIn")
        ) or "",
        integrationsList=parse_string_array(f("integrationsList", "Integrations")),
        companyRevenue=revenue,
        productsAndServicesResult=parse_string_array(
            f("productsAndServicesResult", "Products_Services")
        ),
        productRoadmap=clean_text(f("productRoadmap", "Product_Roadmap")) or "",
        tier=(clean_text(f("tier")) or determine_tier(employee_count, growth, revenue)).lower(),
        originalSearchQuery=clean_text(f("Search Query", "originalSearchQuery")) or "",
        enrichmentSource="clay_main_enrichment",
    )


def parse_jobs_update(payload: ClayRecordPayload) -> Optional[JobsUpdate]:
    """
    Map a jobs row onto a JobsUpdate with equal-length arrays.
    Returns None when the row has no Company_Name.
    """
    company_name = clean_text(payload.Company_Name)
    if not company_name:
        return None

    f = payload.field
    titles = parse_job_array(f("Job_Titles", "jobTitles", "Job_Title"))
    urls = parse_job_array(f("Job_URLs", "jobUrls", "Job_URL"))
    descriptions = parse_job_array(f("Job_Descriptions", "jobDescriptions", "Job_Description"))

    length = max(len(titles), len(urls), len(descriptions))
    return JobsUpdate(
        companyName=company_name,
        jobTitles=pad_array(titles, length),
        jobUrls=pad_array(urls, length),
        jobDescriptions=pad_array(descriptions, length),
        updatedAt=datetime.now(timezone.utc).isoformat(),
    )
