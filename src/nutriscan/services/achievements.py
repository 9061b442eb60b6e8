"""Hand-off to the streak and achievement collaborator."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from nutriscan.domain.diary import LogEntry


class AchievementNotifier(Protocol):
    """Collaborator told about every newly saved diary entry."""

    async def entry_logged(self, user_id: UUID, entry: LogEntry) -> None:
        """Record that ``entry`` was added to the user's diary."""


class AchievementEventRepository(Protocol):
    """Persistence interface for achievement events."""

    def create_event(
        self, user_id: UUID, event_type: str, payload: dict[str, object]
    ) -> None:
        """Append an event for the streak worker to consume."""


@dataclass
class AchievementEventNotifier(AchievementNotifier):
    """Queue diary events for the external streak and achievement worker."""

    repository: AchievementEventRepository

    async def entry_logged(self, user_id: UUID, entry: LogEntry) -> None:
        """Append a ``food_logged`` event describing the entry."""
        self.repository.create_event(
            user_id=user_id,
            event_type="food_logged",
            payload={
                "entry_id": str(entry.id),
                "timestamp": entry.timestamp,
                "product_name": entry.product_name,
                "product_type": entry.product.product_type.value,
                "health_score": entry.product.health_score,
                "calories": entry.calories,
            },
        )
