"""User profile service: dietary context, timezone and daily limits."""

from dataclasses import dataclass, fields, replace
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from nutriscan.domain.diary import DailyLimits
from nutriscan.domain.errors import ValidationError
from nutriscan.domain.products import DietProfile
from nutriscan.domain.profile import BodyMetrics, UserSettings

MIN_DAILY_CALORIES = 1200
ACTIVITY_FACTOR = 1.2

# goal -> (calorie adjustment, protein grams per kg)
_GOAL_ADJUSTMENTS: dict[str, tuple[int, float]] = {
    "Weight Loss": (-500, 1.5),
    "Muscle Gain": (300, 1.8),
    "Heart Health": (0, 1.0),
    "Diabetes Control": (0, 1.0),
}
_DEFAULT_PROTEIN_PER_KG = 0.8

_LIMIT_FIELDS = {item.name for item in fields(DailyLimits)}


class ProfileRepository(Protocol):
    """Persistence interface for the user settings document."""

    def get_settings(self, user_id: UUID) -> UserSettings | None:
        """Return the user's settings if stored."""

    def update_settings(self, user_id: UUID, payload: dict[str, object]) -> None:
        """Merge fields into the user's settings document."""


@dataclass
class ProfileService:
    """Read the profile context that providers and the diary depend on."""

    repository: ProfileRepository

    def get_diet_profile(self, user_id: UUID) -> DietProfile:
        """Return diet type and goal, with defaults for unset fields."""
        settings = self.repository.get_settings(user_id)
        default = DietProfile()
        if settings is None:
            return default
        diet = settings.diet
        if isinstance(diet, list):
            diet = ", ".join(str(item) for item in diet if item)
        return DietProfile(
            diet_type=diet or default.diet_type,
            goal=settings.goal or default.goal,
        )

    def get_limits(self, user_id: UUID) -> DailyLimits:
        """Return default limits overlaid with any calculated targets."""
        settings = self.repository.get_settings(user_id)
        if settings is None:
            return DailyLimits()
        return merge_limits(DailyLimits(), settings.calculated_limits)

    def get_timezone(self, user_id: UUID) -> str:
        """Return the user timezone or UTC if unset."""
        settings = self.repository.get_settings(user_id)
        if settings is None or not settings.timezone:
            return "UTC"
        return settings.timezone

    def set_timezone(self, user_id: UUID, timezone: str) -> None:
        """Persist a user's timezone after checking it is a known IANA name."""
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError(f"Unknown timezone: {timezone}") from exc
        self.repository.update_settings(user_id, {"timezone": timezone})

    def save_body_metrics(self, user_id: UUID, metrics: BodyMetrics) -> DailyLimits:
        """Recalculate targets from body metrics and persist them."""
        targets = calculate_targets(metrics)
        self.repository.update_settings(
            user_id,
            {
                "age": metrics.age,
                "weight": metrics.weight_kg,
                "height": metrics.height_cm,
                "gender": metrics.gender,
                "goal": metrics.goal,
                "calculated_limits": targets,
            },
        )
        return merge_limits(DailyLimits(), targets)


def calculate_targets(metrics: BodyMetrics) -> dict[str, float]:
    """Return calorie and protein targets using the Mifflin-St Jeor equation."""
    if metrics.weight_kg <= 0 or metrics.height_cm <= 0 or metrics.age <= 0:
        raise ValidationError("Please enter valid numbers for age, weight and height.")
    bmr = 10 * metrics.weight_kg + 6.25 * metrics.height_cm - 5 * metrics.age
    bmr += 5 if metrics.gender.strip().lower() == "male" else -161
    calories = round(bmr * ACTIVITY_FACTOR)

    calorie_delta, protein_per_kg = _GOAL_ADJUSTMENTS.get(
        metrics.goal, (0, _DEFAULT_PROTEIN_PER_KG)
    )
    calories = max(calories + calorie_delta, MIN_DAILY_CALORIES)
    protein = round(metrics.weight_kg * protein_per_kg)
    return {"calories": calories, "protein": protein}


def merge_limits(base: DailyLimits, overrides: dict[str, object]) -> DailyLimits:
    """Overlay numeric overrides on ``base``, ignoring unknown keys."""
    updates = {
        key: float(value)
        for key, value in overrides.items()
        if key in _LIMIT_FIELDS
        and isinstance(value, int | float)
        and not isinstance(value, bool)
    }
    return replace(base, **updates)
