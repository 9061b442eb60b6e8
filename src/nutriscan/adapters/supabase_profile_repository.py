"""Supabase repository for the user settings document."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_query import execute
from nutriscan.domain.profile import UserSettings
from nutriscan.services.profile import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for user settings."""

    client: Client

    def get_settings(self, user_id: UUID) -> UserSettings | None:
        """Return the stored settings for a user."""
        response = execute(
            self.client.table("user_settings")
            .select("diet, goal, timezone, calculated_limits")
            .eq("user_id", str(user_id))
            .limit(1),
            action="get user settings",
        )
        if not response.data:
            return None
        row = response.data[0]
        limits = row.get("calculated_limits")
        return UserSettings(
            diet=row.get("diet"),
            goal=row.get("goal"),
            timezone=row.get("timezone"),
            calculated_limits=limits if isinstance(limits, dict) else {},
        )

    def update_settings(self, user_id: UUID, payload: dict[str, object]) -> None:
        """Upsert settings fields for the user."""
        execute(
            self.client.table("user_settings").upsert(
                {
                    **payload,
                    "user_id": str(user_id),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="user_id",
            ),
            action="update user settings",
        )
