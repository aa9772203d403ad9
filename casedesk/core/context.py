"""Identity/session context supplied by the host application."""

from __future__ import annotations

from dataclasses import dataclass

from casedesk.core.enums import LocationType, NeedType


@dataclass(frozen=True)
class UserContext:
    current_location_id: str | None = None
    current_location_type: LocationType | None = None

    def requires_sale_date(self, need_type: int | None) -> bool:
        """Cemetery locations and pre-need contracts must carry a sale date even in drafts."""
        return self.current_location_type == LocationType.CEMETERY or need_type == NeedType.PRE_NEED

    def sale_date_label(self, need_type: int | None) -> str:
        if self.current_location_type == LocationType.FUNERAL and need_type == NeedType.AT_NEED:
            return "Service date"
        return "Sale date"
