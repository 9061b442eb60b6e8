"""Daily diary aggregation by user timezone."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from nutriscan.domain.diary import (
    DailyInsight,
    DailyLimits,
    DailySummary,
    DiaryState,
    DiaryView,
    DuplicateGroup,
    LogEntry,
    MealBucket,
    WaterEntry,
    empty_buckets,
)
from nutriscan.domain.errors import NutriScanError
from nutriscan.domain.products import coerce_optional_float
from nutriscan.services.entries import FoodLogRepository, WaterLogRepository
from nutriscan.services.portions import round_half_up
from nutriscan.services.profile import ProfileService

# (first hour inclusive, last hour exclusive, bucket); other hours are snacks.
MEAL_HOURS = (
    (5, 11, MealBucket.BREAKFAST),
    (11, 16, MealBucket.LUNCH),
    (16, 22, MealBucket.DINNER),
)
DUPLICATE_CALORIE_TOLERANCE = 5
CALORIE_OVERAGE_RATIO = 1.1
HALF = 0.5
HYDRATION_CHECK_AFTER_HOUR = 14

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class DiaryService:
    """Service that folds a user's raw logs into a day view."""

    food_logs: FoodLogRepository
    water_logs: WaterLogRepository
    profile_service: ProfileService
    clock: Callable[[], datetime] = _utcnow

    def today(self, user_id: UUID) -> date:
        """Return the current date in the user's timezone."""
        tz = _zone(self.profile_service.get_timezone(user_id))
        return self.clock().astimezone(tz).date()

    def load(self, user_id: UUID, day: date) -> DiaryView:
        """Build the diary view for ``day`` from scratch."""
        tz = _zone(self.profile_service.get_timezone(user_id))
        limits = self.profile_service.get_limits(user_id)
        start_ms, end_ms = day_window(day, tz)

        logs = [
            entry
            for entry in self.food_logs.list_food_logs(user_id)
            if start_ms <= entry.timestamp <= end_ms
        ]
        water = [
            entry
            for entry in self.water_logs.list_water_logs(user_id)
            if start_ms <= entry.timestamp <= end_ms
        ]

        grouped = group_by_meal(logs, tz)
        summary = summarize(logs, water)
        now_local = self.clock().astimezone(tz)
        return DiaryView(
            day=day,
            grouped_logs=grouped,
            groups={
                bucket: group_duplicates(items) for bucket, items in grouped.items()
            },
            bucket_calories={
                bucket: sum(_number(entry.calories) for entry in items)
                for bucket, items in grouped.items()
            },
            summary=summary,
            limits=limits,
            insight=daily_insight(summary, limits, now_local, has_logs=bool(logs)),
            water_progress=water_progress(summary, limits),
            logs=logs,
        )


@dataclass
class DiaryController:
    """Idle -> Loading -> Ready state machine for one user's date selection.

    A failed load still ends in Ready, with an empty view and ``error`` set.
    """

    service: DiaryService
    user_id: UUID
    selected_date: date | None = None
    state: DiaryState = DiaryState.IDLE
    view: DiaryView | None = None
    error: str | None = None

    def select_date(self, day: date) -> DiaryView:
        """Switch to ``day`` and reload."""
        self.selected_date = day
        return self.refresh()

    def refresh(self) -> DiaryView:
        """Rebuild the view for the selected date (today if none)."""
        self.state = DiaryState.LOADING
        try:
            if self.selected_date is None:
                self.selected_date = self.service.today(self.user_id)
            self.view = self.service.load(self.user_id, self.selected_date)
            self.error = None
        except NutriScanError as exc:
            _logger.exception("Diary load failed for user %s", self.user_id)
            self.view = empty_view(self.selected_date or self.service.clock().date())
            self.error = exc.user_message
        finally:
            self.state = DiaryState.READY
        return self.view


def day_window(day: date, tz: ZoneInfo) -> tuple[int, int]:
    """Return inclusive epoch-ms bounds of ``day`` in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000) - 1


def meal_bucket(hour: int) -> MealBucket:
    """Classify an hour of day (0-23) into exactly one meal bucket."""
    for first, last, bucket in MEAL_HOURS:
        if first <= hour < last:
            return bucket
    return MealBucket.SNACKS


def group_by_meal(
    entries: list[LogEntry], tz: ZoneInfo
) -> dict[MealBucket, list[LogEntry]]:
    """Split entries into meal buckets by local hour."""
    grouped: dict[MealBucket, list[LogEntry]] = empty_buckets()
    for entry in entries:
        hour = datetime.fromtimestamp(entry.timestamp / 1000, tz=tz).hour
        grouped[meal_bucket(hour)].append(entry)
    return grouped


def group_duplicates(entries: list[LogEntry]) -> list[DuplicateGroup]:
    """Merge entries with the same name and calories within 5 kcal."""
    groups: list[DuplicateGroup] = []
    for entry in entries:
        calories = _number(entry.calories)
        match = next(
            (
                group
                for group in groups
                if group.entry.product_name == entry.product_name
                and abs(_number(group.entry.calories) - calories)
                < DUPLICATE_CALORIE_TOLERANCE
            ),
            None,
        )
        if match is None:
            groups.append(
                DuplicateGroup(
                    entry=entry, count=1, total_calories=calories, ids=[entry.id]
                )
            )
            continue
        match.count += 1
        match.total_calories += calories
        match.ids.append(entry.id)
    return groups


def summarize(entries: list[LogEntry], water: list[WaterEntry]) -> DailySummary:
    """Fold entries into rounded totals; missing values count as zero."""
    calories = protein = carbs = fat = 0.0
    for entry in entries:
        calories += _number(entry.product.calories)
        protein += _number(entry.product.protein)
        carbs += _number(entry.product.carbohydrates)
        fat += _number(entry.product.total_fat)
    total_water = sum(_number(item.amount) for item in water)
    return DailySummary(
        total_calories=int(round_half_up(calories)),
        total_protein=int(round_half_up(protein)),
        total_carbs=int(round_half_up(carbs)),
        total_fat=int(round_half_up(fat)),
        total_water=round_half_up(total_water, 1),
    )


def daily_insight(
    summary: DailySummary,
    limits: DailyLimits,
    now_local: datetime,
    *,
    has_logs: bool,
) -> DailyInsight | None:
    """Return the first matching tip for the day, if any."""
    if not has_logs:
        return None
    if summary.total_calories > limits.calories * CALORIE_OVERAGE_RATIO:
        return DailyInsight(
            kind="calorie_overage",
            text="You've exceeded your goal. Try a lighter meal next.",
        )
    if (
        summary.total_protein < limits.protein * HALF
        and summary.total_calories > limits.calories * HALF
    ):
        return DailyInsight(
            kind="protein_low",
            text="Protein is lagging. Prioritize protein in your next meal.",
        )
    if (
        summary.total_water < limits.water * HALF
        and now_local.hour > HYDRATION_CHECK_AFTER_HOUR
    ):
        return DailyInsight(
            kind="hydration", text="Hydration check! Grab a glass of water."
        )
    if summary.total_calories > 0:
        return DailyInsight(
            kind="encouragement", text="You're doing great! Keep tracking."
        )
    return None


def water_progress(summary: DailySummary, limits: DailyLimits) -> float:
    """Return the share of the water target reached, capped at 1."""
    if limits.water <= 0:
        return 1.0
    return min(summary.total_water / limits.water, 1.0)


def empty_view(day: date, limits: DailyLimits | None = None) -> DiaryView:
    """Return a view with no entries."""
    return DiaryView(
        day=day,
        grouped_logs=empty_buckets(),
        groups=empty_buckets(),
        bucket_calories={bucket: 0.0 for bucket in MealBucket},
        summary=DailySummary(),
        limits=limits or DailyLimits(),
    )


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        _logger.warning("Unknown timezone %r, using UTC", name)
        return ZoneInfo("UTC")


def _number(value: object) -> float:
    number = coerce_optional_float(value)
    return number if number is not None else 0.0
