"""Domain models for the user's settings document."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserSettings:
    """Stored profile settings relevant to scanning and the diary."""

    diet: str | list[str] | None = None
    goal: str | None = None
    timezone: str | None = None
    calculated_limits: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class BodyMetrics:
    """Inputs for the daily calorie and protein targets."""

    age: float
    weight_kg: float
    height_cm: float
    gender: str
    goal: str = "General Health"
