"""Domain models for a user's favorite products."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Favorite:
    """A product the user starred from a scan result."""

    product_key: str
    product_name: str
    calories: float | None
    protein: float | None
    created_at: datetime
