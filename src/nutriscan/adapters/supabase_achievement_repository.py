"""Supabase repository for achievement events."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_query import execute
from nutriscan.services.achievements import AchievementEventRepository


@dataclass
class SupabaseAchievementRepository(AchievementEventRepository):
    """Supabase-backed achievement event queue."""

    client: Client

    def create_event(
        self, user_id: UUID, event_type: str, payload: dict[str, object]
    ) -> None:
        """Insert an achievement event row."""
        execute(
            self.client.table("achievement_events").insert(
                {
                    "user_id": str(user_id),
                    "event_type": event_type,
                    "payload_json": payload,
                }
            ),
            action="create achievement event",
        )
