"""
Inbound request schemas - raw input from the UI and from Clay callbacks.
Fields are optional here; handlers decide what is missing so they can answer
with the 400 messages the front end expects instead of a 422.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from bizintel.services.field_parsing import PLACEHOLDER_VALUES

SEARCH_MODES = ("rfp", "competitor")


class SearchRequest(BaseModel):
    """Search kicked off from the RFP or competitor view."""
    query: Optional[str] = None
    mode: Optional[str] = None
    filters: dict[str, Any] = Field(default_factory=dict)


class EnrichSelectedRequest(BaseModel):
    """Leads the user picked for full enrichment."""
    companies: list[dict[str, Any]] = Field(default_factory=list)
    originalQuery: str = ""
    mode: str = "rfp"


class ClayRecordPayload(BaseModel):
    """
    Any per-company Clay callback (main enrichment or jobs).
    Clay column names vary between table versions, so everything beyond the
    key is kept as extra and resolved through alias lists.
    """
    model_config = ConfigDict(extra="allow")

    Company_Name: Any = None  # usually a string; numbers/null are cleaned by the parser

    def field(self, *names: str) -> Any:
        """
        Return the first non-empty value among the given column names.
        Placeholder cells ("N/A", "null", blanks) count as empty.
        """
        extras = self.model_extra or {}
        for name in names:
            value = extras.get(name)
            if value is None or value == []:
                continue
            if isinstance(value, str) and value.strip().lower() in PLACEHOLDER_VALUES:
                continue
            return value
        return None
