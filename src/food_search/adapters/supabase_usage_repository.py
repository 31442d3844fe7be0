"""Supabase implementation for per-food usage counts."""

from collections.abc import Sequence
from dataclasses import dataclass

from supabase import Client

from food_search.services.search import UsageRepository


@dataclass
class SupabaseUsageRepository(UsageRepository):
    """Reads usage counts from the cached food items table."""

    client: Client
    table_name: str = "food_items"

    def get_usage_counts(self, identifiers: Sequence[str]) -> dict[str, int]:
        """Return usage counts keyed by barcode."""
        if not identifiers:
            return {}
        response = (
            self.client.table(self.table_name)
            .select("barcode, usage_count")
            .in_("barcode", list(identifiers))
            .execute()
        )
        counts: dict[str, int] = {}
        for row in response.data or []:
            barcode = row.get("barcode")
            usage_count = row.get("usage_count")
            if barcode is None or usage_count is None:
                continue
            counts[str(barcode)] = int(usage_count)
        return counts
