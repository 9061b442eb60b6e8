"""Supabase repository for water intake logs."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_query import execute
from nutriscan.domain.diary import WaterEntry
from nutriscan.domain.errors import PersistenceError
from nutriscan.services.entries import WaterLogRepository


@dataclass
class SupabaseWaterLogRepository(WaterLogRepository):
    """Supabase implementation for water logs."""

    client: Client

    def list_water_logs(self, user_id: UUID) -> list[WaterEntry]:
        """Return all water entries of the user."""
        response = execute(
            self.client.table("water_logs")
            .select("id, user_id, amount, timestamp")
            .eq("user_id", str(user_id))
            .order("timestamp", desc=False),
            action="list water logs",
        )
        return [_parse_row(row) for row in response.data or []]

    def create_water_log(
        self, user_id: UUID, amount: float, timestamp: int
    ) -> WaterEntry:
        """Insert a water entry row."""
        response = execute(
            self.client.table("water_logs").insert(
                {"user_id": str(user_id), "amount": amount, "timestamp": timestamp}
            ),
            action="create water log",
        )
        if not response.data:
            raise PersistenceError("Failed to create water log")
        return _parse_row(response.data[0])


def _parse_row(row: dict[str, object]) -> WaterEntry:
    return WaterEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        amount=float(row.get("amount") or 0.0),
        timestamp=int(row.get("timestamp") or 0),
    )
