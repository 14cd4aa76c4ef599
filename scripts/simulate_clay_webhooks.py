"""
Simulate Clay callbacks against a running bizintel server.

Usage:
    python scripts/simulate_clay_webhooks.py
    python scripts/simulate_clay_webhooks.py --kind bulk --count 5
    python scripts/simulate_clay_webhooks.py --kind main --company "Acme Analytics"
    python scripts/simulate_clay_webhooks.py --kind jobs --company "Acme Analytics"
"""
import argparse
import asyncio
import hashlib
import hmac
import json
import logging

import httpx

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_URL = "http://localhost:8000"


def _lead(name: str, query: str) -> dict:
    return {
        "Company_Name": name,
        "search_query": query,
        "why_relevant": f"{name} sells into the same buyers",
        "niche_focus": "Analytics",
        "source": "clay",
        "linkedinURL": f"https://www.linkedin.com/company/{name.lower().replace(' ', '-')}",
    }


async def _post(path: str, payload, signing_key: str = "") -> httpx.Response:
    body = json.dumps(payload).encode()
    headers = {"Content-Type": "application/json"}
    if signing_key:
        digest = hmac.new(signing_key.encode(), body, hashlib.sha256).hexdigest()
        headers["X-Webhook-Signature"] = f"sha256={digest}"
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.post(f"{BASE_URL}{path}", content=body, headers=headers)
        logger.info("%s response: %s %s", path, resp.status_code, resp.text)
        return resp


async def simulate_single(company: str, query: str, signing_key: str):
    """Legacy single-object lead callback."""
    return await _post("/api/webhook/receive-companies", _lead(company, query), signing_key)


async def simulate_bulk(count: int, query: str, signing_key: str):
    """Wrapped bulk lead callback."""
    payload = {"CompetitiveCompanies": [_lead(f"Company {i + 1}", query) for i in range(count)]}
    return await _post("/api/webhook/receive-companies", payload, signing_key)


async def simulate_main(company: str, query: str, signing_key: str):
    """Main enrichment row, using the Clay column names."""
    payload = {
        "Company_Name": company,
        "Source": f"{company.lower().replace(' ', '')}.com",
        "Total_Funding_Raised": "$25M",
        "Employee_Count": "1,250",
        "Employee_Growth": "14.5%",
        "Product_Features": "Dashboards, Alerts, Forecasting",
        "Pricing_Plans": "Starter $49/mo | Pro $199/mo",
        "Customer_Names": "Globex, Initech",
        "Industry": "Software",
        "Description": f"{company} builds analytics tools.",
        "Integrations": "Salesforce, HubSpot",
        "Company_Revenue": "$60,000,000",
        "Search Query": query,
    }
    return await _post("/api/webhook/clay-results/main", payload, signing_key)


async def simulate_jobs(company: str, signing_key: str):
    """Jobs row with newline-joined postings."""
    payload = {
        "Company_Name": company,
        "Job_Titles": "Account Executive\nData Engineer",
        "Job_URLs": "https://jobs.example.com/1\nhttps://jobs.example.com/2",
        "Job_Descriptions": "Sell to mid-market, remote\nBuild pipelines, Python",
    }
    return await _post("/api/webhook/clay-results/jobs", payload, signing_key)


async def main():
    global BASE_URL
    parser = argparse.ArgumentParser(description="Simulate Clay webhook callbacks")
    parser.add_argument("--kind", default="single", choices=["single", "bulk", "main", "jobs"])
    parser.add_argument("--company", default="Acme Analytics")
    parser.add_argument("--query", default="analytics platforms for retail")
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument("--signing-key", default="", help="WEBHOOK_SIGNING_KEY of the server, if set")
    parser.add_argument("--base-url", default=BASE_URL)
    args = parser.parse_args()

    BASE_URL = args.base_url.rstrip("/")
    logger.info("Simulating %s callback against %s...", args.kind, BASE_URL)

    if args.kind == "single":
        await simulate_single(args.company, args.query, args.signing_key)
    elif args.kind == "bulk":
        await simulate_bulk(args.count, args.query, args.signing_key)
    elif args.kind == "main":
        await simulate_main(args.company, args.query, args.signing_key)
    elif args.kind == "jobs":
        await simulate_jobs(args.company, args.signing_key)


if __name__ == "__main__":
    asyncio.run(main())
