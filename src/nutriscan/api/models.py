"""Pydantic models for API request and response payloads."""

from pydantic import BaseModel, Field

from nutriscan.domain.products import ProductRecord


class LogCreateRequest(BaseModel):
    """Payload for saving a resolved product to the diary."""

    product: ProductRecord
    portions: float = 1.0
    notes: str = ""
    image_uri: str | None = None


class LogUpdateRequest(BaseModel):
    """Editable fields of an existing diary entry."""

    portions: float | None = None
    notes: str | None = None
    product_name: str | None = None


class WaterRequest(BaseModel):
    """Water intake in liters."""

    amount: float


class BodyMetricsRequest(BaseModel):
    """Body metrics used to recalculate daily targets."""

    age: float
    weight_kg: float
    height_cm: float
    gender: str
    goal: str = "General Health"


class TimezoneRequest(BaseModel):
    """IANA timezone name such as ``Europe/Berlin``."""

    timezone: str = Field(min_length=1)


class FavoriteToggleRequest(BaseModel):
    """Product to star or unstar."""

    product: ProductRecord
