"""
CSV snapshot of enriched competitors, using the column headers the
front end's competitor table reads.
"""
import csv
import io
from typing import Iterable

from bizintel.schemas.companies import EnrichedCompetitor

# (header, attribute) in column order
EXPORT_COLUMNS = [
    ("Company Name", "companyName"),
    ("domain", "domain"),
    ("LinkedIn Company URL", "linkedinCompanyUrl"),
    ("Total Funding Raised", "totalFundingRaised"),
    ("Employee Count", "employeeCount"),
    ("Percent Employee Growth Over Last_6Months", "percentEmployeeGrowthOverLast6Months"),
    ("Product Features", "productFeatures"),
    ("Pricing Plan Summary Result", "pricingPlanSummaryResult"),
    ("Customer Names", "customerNames"),
    ("Industry", "industry"),
    ("Description", "description"),
    ("Sales Contact Email Sales Contact", "salesContactEmail"),
    ("Enterprise Sales Rep LinkedIn URL Linkedin Profile Url", "enterpriseSalesRepLinkedinUrl"),
    ("Job Titles", "jobTitles"),
    ("Job URLs", "jobUrls"),
    ("Job Descriptions", "jobDescriptions"),
    ("Integrations List", "integrationsList"),
    ("Company Revenue", "companyRevenue"),
    ("Products & Services Result", "productsAndServicesResult"),
    ("Product Roadmap", "productRoadmap"),
    ("Tier", "tier"),
]

# Long free-text lists read better one per line
NEWLINE_JOINED = {
    "productFeatures",
    "pricingPlanSummaryResult",
    "jobTitles",
    "jobUrls",
    "jobDescriptions",
}


def _cell(attribute: str, value) -> str:
    if isinstance(value, list):
        separator = "\n" if attribute in NEWLINE_JOINED else ", "
        return separator.join(str(v) for v in value)
    return str(value)


def competitors_to_csv(competitors: Iterable[EnrichedCompetitor]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for competitor in competitors:
        writer.writerow([
            _cell(attribute, getattr(competitor, attribute))
            for _, attribute in EXPORT_COLUMNS
        ])
    return output.getvalue()
