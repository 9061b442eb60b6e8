"""Portion multipliers and nutrient scaling."""

from decimal import ROUND_HALF_UP, Decimal

from nutriscan.domain.diary import NutrientSnapshot
from nutriscan.domain.products import ProductRecord

MIN_MULTIPLIER = 0.5
MULTIPLIER_STEP = 0.5


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero, as users expect from a nutrition label."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def normalize_multiplier(value: float) -> float:
    """Snap a multiplier to the 0.5 grid with a floor of 0.5."""
    steps = round_half_up(value / MULTIPLIER_STEP)
    return max(MIN_MULTIPLIER, steps * MULTIPLIER_STEP)


def step_multiplier(current: float, delta: float) -> float:
    """Apply a +/- step to the current multiplier."""
    return normalize_multiplier(current + delta)


def scale_nutrients(
    base: NutrientSnapshot, multiplier: float
) -> dict[str, float | None]:
    """Scale single-portion nutrients; missing values stay missing.

    Always computed from the unscaled base, so re-applying the same
    multiplier gives the same result.
    """
    return {
        "calories": _scaled(base.calories, multiplier, digits=0),
        "protein": _scaled(base.protein, multiplier, digits=1),
        "carbohydrates": _scaled(base.carbohydrates, multiplier, digits=1),
        "total_fat": _scaled(base.total_fat, multiplier, digits=1),
    }


def scale_product(
    product: ProductRecord, base: NutrientSnapshot, multiplier: float
) -> ProductRecord:
    """Return a copy of ``product`` with nutrients scaled to ``multiplier``."""
    return product.model_copy(update=scale_nutrients(base, multiplier))


def _scaled(value: float | None, multiplier: float, *, digits: int) -> float | None:
    if value is None:
        return None
    return round_half_up(value * multiplier, digits)
