"""Domain models for the food and water diary."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from uuid import UUID

from nutriscan.domain.products import ProductRecord


class MealBucket(Enum):
    """Time-of-day meal classification."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACKS = "Snacks"


class DiaryState(Enum):
    """Load state of a diary selection."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class NutrientSnapshot:
    """Unscaled single-portion nutrients that portion scaling starts from."""

    calories: float | None
    protein: float | None
    carbohydrates: float | None
    total_fat: float | None

    @classmethod
    def from_product(cls, product: ProductRecord) -> "NutrientSnapshot":
        """Capture the provider's single-portion values."""
        return cls(
            calories=product.calories,
            protein=product.protein,
            carbohydrates=product.carbohydrates,
            total_fat=product.total_fat,
        )


@dataclass(frozen=True)
class LogEntry:
    """A persisted diary entry; ``product`` holds the portion-scaled values."""

    id: UUID
    user_id: UUID
    timestamp: int
    product: ProductRecord
    base: NutrientSnapshot
    portions: float = 1.0
    notes: str = ""
    image_uri: str | None = None

    @property
    def product_name(self) -> str:
        return self.product.product_name

    @property
    def calories(self) -> float | None:
        return self.product.calories


@dataclass(frozen=True)
class LogDraft:
    """Entry fields before the store assigns an id."""

    timestamp: int
    product: ProductRecord
    base: NutrientSnapshot
    portions: float = 1.0
    notes: str = ""
    image_uri: str | None = None


@dataclass(frozen=True)
class WaterEntry:
    """Logged water intake in liters."""

    id: UUID
    user_id: UUID
    amount: float
    timestamp: int


@dataclass(frozen=True)
class DailyLimits:
    """Daily nutrient targets the summary is compared against."""

    calories: float = 2000
    protein: float = 120
    carbohydrates: float = 250
    fat: float = 80
    water: float = 3
    fiber: float = 30


@dataclass(frozen=True)
class DailySummary:
    """Rounded daily totals."""

    total_calories: int = 0
    total_protein: int = 0
    total_carbs: int = 0
    total_fat: int = 0
    total_water: float = 0.0


@dataclass
class DuplicateGroup:
    """Near-identical entries displayed as one row with a count."""

    entry: LogEntry
    count: int
    total_calories: float
    ids: list[UUID]

    @property
    def delete_target(self) -> UUID:
        """Return the most recently added constituent id."""
        return self.ids[-1]


@dataclass(frozen=True)
class DailyInsight:
    """Single prioritized tip for the day."""

    kind: str
    text: str


@dataclass
class DiaryView:
    """Read-only projection of one day of the diary."""

    day: date
    grouped_logs: dict[MealBucket, list[LogEntry]]
    groups: dict[MealBucket, list[DuplicateGroup]]
    bucket_calories: dict[MealBucket, float]
    summary: DailySummary
    limits: DailyLimits
    insight: DailyInsight | None = None
    water_progress: float = 0.0
    logs: list[LogEntry] = field(default_factory=list)


def empty_buckets() -> dict[MealBucket, list]:
    """Return a mapping with an empty list per meal bucket."""
    return {bucket: [] for bucket in MealBucket}
