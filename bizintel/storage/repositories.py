"""
Shared-store repositories.

CompanyStore holds the leads of the current search session, unique by
Company_Name. EnrichedCompetitorStore holds enriched profiles, unique by
companyName, merging repeated deliveries in place.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Iterable

from bizintel.schemas.companies import CompanyLead, EnrichedCompetitor, JobsUpdate
from bizintel.services.merge import apply_jobs_update, merge_enriched_competitor
from bizintel.storage.base import Records, StorageBackend

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _next_id(records: Records) -> int:
    """Millisecond timestamp, bumped past any id already handed out."""
    candidate = int(time.time() * 1000)
    highest = max((r.get("id") or 0 for r in records), default=0)
    return max(candidate, highest + 1)


class CompanyStore:
    collection = "companies"

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def add(self, lead: CompanyLead) -> bool:
        """Add one lead. Returns False if a lead with that name is already stored."""
        return await self.add_many([lead]) == 1

    async def add_many(self, leads: Iterable[CompanyLead]) -> int:
        """Append leads whose Company_Name is not stored yet. Returns how many were added."""
        incoming = list(leads)

        def _apply(records: Records) -> tuple[Records, int]:
            names = {r.get("Company_Name") for r in records}
            added = 0
            for lead in incoming:
                if lead.Company_Name in names:
                    logger.info(
                        "Company already exists, skipping: %s", lead.Company_Name,
                        extra={"company_name": lead.Company_Name},
                    )
                    continue
                records.append(lead.model_dump())
                names.add(lead.Company_Name)
                added += 1
            return records, added

        added = await self.backend.mutate(self.collection, _apply)
        logger.info(
            "Stored %d of %d received companies", added, len(incoming),
            extra={"collection": self.collection, "count": added},
        )
        return added

    async def get_all(self) -> list[CompanyLead]:
        records = await self.backend.load(self.collection)
        return [CompanyLead(**r) for r in records]

    async def count(self) -> int:
        return len(await self.backend.load(self.collection))

    async def clear(self) -> int:
        """Drop every lead. Returns how many were removed."""
        removed = await self.backend.mutate(self.collection, lambda records: ([], len(records)))
        logger.info("Companies cleared (%d removed)", removed, extra={"collection": self.collection})
        return removed


class EnrichedCompetitorStore:
    collection = "enriched_competitors"

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    @staticmethod
    def _index_of(records: Records, company_name: str) -> int:
        for i, record in enumerate(records):
            if record.get("companyName") == company_name:
                return i
        return -1

    async def add(self, competitor: EnrichedCompetitor) -> EnrichedCompetitor:
        """Insert a profile, or merge it into the stored one with the same companyName."""
        now = _utc_now_iso()

        def _apply(records: Records) -> tuple[Records, EnrichedCompetitor]:
            idx = self._index_of(records, competitor.companyName)
            if idx >= 0:
                stored = merge_enriched_competitor(EnrichedCompetitor(**records[idx]), competitor)
                stored.updatedAt = now
                records[idx] = stored.model_dump()
                logger.info(
                    "Merged enrichment into existing profile: %s", competitor.companyName,
                    extra={"company_name": competitor.companyName},
                )
            else:
                stored = competitor.model_copy(update={
                    "id": competitor.id or _next_id(records),
                    "enrichmentTimestamp": competitor.enrichmentTimestamp or now,
                    "updatedAt": now,
                })
                records.append(stored.model_dump())
                logger.info(
                    "Stored new enriched profile: %s", competitor.companyName,
                    extra={"company_name": competitor.companyName},
                )
            return records, stored

        return await self.backend.mutate(self.collection, _apply)

    async def update_jobs(self, jobs: JobsUpdate) -> EnrichedCompetitor:
        """
        Union job postings into a stored profile. Jobs may arrive before the
        main enrichment; a placeholder profile is created so the main delivery
        merges into it later.
        """
        now = jobs.updatedAt or _utc_now_iso()

        def _apply(records: Records) -> tuple[Records, EnrichedCompetitor]:
            idx = self._index_of(records, jobs.companyName)
            if idx >= 0:
                stored = apply_jobs_update(EnrichedCompetitor(**records[idx]), jobs)
                stored.updatedAt = now
                records[idx] = stored.model_dump()
            else:
                logger.info(
                    "Jobs arrived before main enrichment, creating placeholder: %s",
                    jobs.companyName,
                    extra={"company_name": jobs.companyName},
                )
                stored = EnrichedCompetitor(
                    id=_next_id(records),
                    companyName=jobs.companyName,
                    enrichmentTimestamp=now,
                    enrichmentSource="clay_jobs_enrichment",
                    updatedAt=now,
                )
                stored = apply_jobs_update(stored, jobs)
                records.append(stored.model_dump())
            return records, stored

        return await self.backend.mutate(self.collection, _apply)

    async def get_all(self) -> list[EnrichedCompetitor]:
        records = await self.backend.load(self.collection)
        return [EnrichedCompetitor(**r) for r in records]

    async def clear(self) -> int:
        removed = await self.backend.mutate(self.collection, lambda records: ([], len(records)))
        logger.info(
            "Enriched competitors cleared (%d removed)", removed,
            extra={"collection": self.collection},
        )
        return removed
