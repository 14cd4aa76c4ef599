"""
Merge rules for enriched company profiles.

The same company reaches us several times: once from the main enrichment
table, once (or more) from the jobs table, and again whenever Clay re-runs a
row. Deliveries are merged field by field:

- scalars: a non-empty incoming value replaces the stored one
- lists: order-preserving set union, stored items first
- job postings: unioned as (title, url, description) triples so the three
  parallel arrays keep lining up

Merging the same delivery twice is a no-op, and the union contents do not
depend on delivery order.
"""
from typing import Any, Iterable

from bizintel.schemas.companies import EnrichedCompetitor, JobsUpdate
from bizintel.services.field_parsing import pad_array

JOB_FIELDS = ("jobTitles", "jobUrls", "jobDescriptions")

# Fields owned by the first delivery
_FIRST_WINS = ("id", "enrichmentTimestamp", "companyName")

# Placeholder defaults that must not overwrite real data
_DEFAULT_IS_EMPTY = {"industry": "Unknown", "tier": "startup"}


def _is_empty(name: str, value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or _DEFAULT_IS_EMPTY.get(name) == value
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def union(existing: Iterable, incoming: Iterable) -> list:
    """Order-preserving set union."""
    seen = set()
    merged = []
    for item in list(existing) + list(incoming):
        if item in seen:
            continue
        seen.add(item)
        merged.append(item)
    return merged


def job_triples(record) -> list[tuple[str, str, str]]:
    """Zip the three job arrays (padded to equal length) into postings."""
    titles, urls, descriptions = (list(getattr(record, f)) for f in JOB_FIELDS)
    length = max(len(titles), len(urls), len(descriptions))
    return list(zip(
        pad_array(titles, length),
        pad_array(urls, length),
        pad_array(descriptions, length),
    ))


def _unzip_jobs(triples: list[tuple[str, str, str]]) -> dict[str, list[str]]:
    return {
        "jobTitles": [t[0] for t in triples],
        "jobUrls": [t[1] for t in triples],
        "jobDescriptions": [t[2] for t in triples],
    }


def merge_enriched_competitor(
    existing: EnrichedCompetitor,
    incoming: EnrichedCompetitor,
) -> EnrichedCompetitor:
    """Merge a new delivery for the same company into the stored profile."""
    current = existing.model_dump()
    update = incoming.model_dump()
    merged = dict(current)

    for name, value in update.items():
        if name in JOB_FIELDS:
            continue
        if name in _FIRST_WINS:
            if _is_empty(name, current.get(name)) and not _is_empty(name, value):
                merged[name] = value
            continue
        if isinstance(value, list):
            merged[name] = union(current.get(name) or [], value)
        elif not _is_empty(name, value):
            merged[name] = value

    merged.update(_unzip_jobs(union(job_triples(existing), job_triples(incoming))))
    return EnrichedCompetitor(**merged)


def apply_jobs_update(existing: EnrichedCompetitor, jobs: JobsUpdate) -> EnrichedCompetitor:
    """Union a jobs delivery into the stored profile's job postings."""
    merged = existing.model_dump()
    merged.update(_unzip_jobs(union(job_triples(existing), job_triples(jobs))))
    if jobs.updatedAt:
        merged["updatedAt"] = jobs.updatedAt
    return EnrichedCompetitor(**merged)
