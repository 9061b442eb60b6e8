"""Diary mutations: save, edit, delete with undo, and water logging."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from nutriscan.domain.diary import LogDraft, LogEntry, NutrientSnapshot, WaterEntry
from nutriscan.domain.errors import EntryNotFoundError, ValidationError
from nutriscan.domain.products import ProductRecord
from nutriscan.services.achievements import AchievementNotifier
from nutriscan.services.portions import normalize_multiplier, scale_product

_logger = logging.getLogger(__name__)


class FoodLogRepository(Protocol):
    """Persistence interface for food log entries."""

    def list_food_logs(self, user_id: UUID) -> list[LogEntry]:
        """Return every food log entry of the user."""

    def get_food_log(self, user_id: UUID, entry_id: UUID) -> LogEntry | None:
        """Return a single entry by id."""

    def create_food_log(self, user_id: UUID, draft: LogDraft) -> LogEntry:
        """Insert an entry; the store assigns its id."""

    def replace_food_log(self, entry: LogEntry) -> None:
        """Overwrite an entry's fields, keeping its id."""

    def delete_food_log(self, user_id: UUID, entry_id: UUID) -> None:
        """Remove an entry permanently."""


class WaterLogRepository(Protocol):
    """Persistence interface for water log entries."""

    def list_water_logs(self, user_id: UUID) -> list[WaterEntry]:
        """Return every water entry of the user."""

    def create_water_log(
        self, user_id: UUID, amount: float, timestamp: int
    ) -> WaterEntry:
        """Append a water entry."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True)
class PendingDeletion:
    """A deleted entry that can still be restored."""

    entry: LogEntry
    expires_at: datetime


@dataclass
class UndoBuffer:
    """Single-slot per user, in-memory holder for the last deletion."""

    window_seconds: float = 4.0
    clock: Callable[[], datetime] = _utcnow
    _slots: dict[UUID, PendingDeletion] = field(default_factory=dict)

    def hold(self, entry: LogEntry) -> PendingDeletion:
        """Keep ``entry`` restorable, replacing any earlier pending deletion."""
        pending = PendingDeletion(
            entry=entry,
            expires_at=self.clock() + timedelta(seconds=self.window_seconds),
        )
        self._slots[entry.user_id] = pending
        return pending

    def take(self, user_id: UUID) -> LogEntry | None:
        """Pop the pending deletion if the undo window is still open."""
        pending = self._slots.pop(user_id, None)
        if pending is None or self.clock() >= pending.expires_at:
            return None
        return pending.entry


@dataclass
class EntryService:
    """Service that writes the diary and keeps deletions undoable."""

    food_logs: FoodLogRepository
    water_logs: WaterLogRepository
    achievements: AchievementNotifier
    undo_buffer: UndoBuffer = field(default_factory=UndoBuffer)
    clock: Callable[[], datetime] = _utcnow

    async def save_new(
        self,
        user_id: UUID,
        product: ProductRecord,
        portions: float = 1.0,
        notes: str = "",
        image_uri: str | None = None,
    ) -> LogEntry:
        """Persist a resolved product as a new diary entry."""
        _require_name(product.product_name)
        multiplier = _validated_multiplier(portions)
        base = NutrientSnapshot.from_product(product)
        draft = LogDraft(
            timestamp=epoch_ms(self.clock()),
            product=scale_product(product, base, multiplier),
            base=base,
            portions=multiplier,
            notes=notes,
            image_uri=image_uri,
        )
        entry = self.food_logs.create_food_log(user_id, draft)
        _logger.info("Saved diary entry %s for user %s", entry.id, user_id)
        await self._notify_achievements(user_id, entry)
        return entry

    def edit_and_save(
        self,
        user_id: UUID,
        entry_id: UUID,
        *,
        portions: float | None = None,
        notes: str | None = None,
        product_name: str | None = None,
    ) -> LogEntry:
        """Replace an entry in place, rescaling nutrients from its base values."""
        existing = self.food_logs.get_food_log(user_id, entry_id)
        if existing is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        name = existing.product_name if product_name is None else product_name
        _require_name(name)
        multiplier = _validated_multiplier(
            existing.portions if portions is None else portions
        )
        product = existing.product.model_copy(update={"product_name": name.strip()})
        updated = LogEntry(
            id=existing.id,
            user_id=existing.user_id,
            timestamp=existing.timestamp,
            product=scale_product(product, existing.base, multiplier),
            base=existing.base,
            portions=multiplier,
            notes=existing.notes if notes is None else notes,
            image_uri=existing.image_uri,
        )
        self.food_logs.replace_food_log(updated)
        return updated

    def delete_entry(self, user_id: UUID, entry_id: UUID) -> PendingDeletion:
        """Delete an entry now and keep it restorable for the undo window."""
        existing = self.food_logs.get_food_log(user_id, entry_id)
        if existing is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        self.food_logs.delete_food_log(user_id, entry_id)
        return self.undo_buffer.hold(existing)

    def undo(self, user_id: UUID) -> LogEntry | None:
        """Restore the last deleted entry under a new id, if still allowed."""
        entry = self.undo_buffer.take(user_id)
        if entry is None:
            return None
        restored = self.food_logs.create_food_log(
            user_id,
            LogDraft(
                timestamp=entry.timestamp,
                product=entry.product,
                base=entry.base,
                portions=entry.portions,
                notes=entry.notes,
                image_uri=entry.image_uri,
            ),
        )
        _logger.info("Restored diary entry %s as %s", entry.id, restored.id)
        return restored

    def add_water(self, user_id: UUID, amount: float) -> WaterEntry:
        """Append a water intake entry in liters."""
        if not _is_positive_number(amount):
            raise ValidationError("Water amount must be a positive number.")
        return self.water_logs.create_water_log(
            user_id, float(amount), epoch_ms(self.clock())
        )

    async def _notify_achievements(self, user_id: UUID, entry: LogEntry) -> None:
        try:
            await self.achievements.entry_logged(user_id, entry)
        except Exception:
            _logger.exception(
                "Achievement update failed for entry %s; entry kept", entry.id
            )


def _require_name(name: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Please enter a product name.")


def _validated_multiplier(portions: float) -> float:
    if not _is_positive_number(portions):
        raise ValidationError("Portions must be a positive number.")
    return normalize_multiplier(float(portions))


def _is_positive_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value) and value > 0
