"""Normalized product records and capture inputs."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ProductType(Enum):
    """Kind of product a record describes."""

    FOOD = "Food"
    MEDICINE = "Medicine"
    UNKNOWN = "Unknown"


class VegetarianStatus(Enum):
    """Dietary classification of a product."""

    VEGETARIAN = "Vegetarian"
    NON_VEGETARIAN = "Non-Vegetarian"
    VEGAN = "Vegan"
    UNCLEAR = "Unclear"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Concern(_CamelModel):
    """A flagged ingredient and why it matters."""

    name: str
    concern: str = ""


class SugarInfo(_CamelModel):
    """Declared sugar plus sugar aliases found in the ingredients."""

    label_sugar: float | None = None
    hidden_sugars: list[str] = Field(default_factory=list)

    @field_validator("label_sugar", mode="before")
    @classmethod
    def _nullable_number(cls, value: object) -> float | None:
        return coerce_optional_float(value)

    @field_validator("hidden_sugars", mode="before")
    @classmethod
    def _string_list(cls, value: object) -> list[str]:
        return _as_str_list(value)


class ProductRecord(_CamelModel):
    """Provider output normalized into a single shape.

    Nutrient fields are independently nullable: a value the provider did not
    report stays ``None`` and is never replaced by zero.
    """

    product_type: ProductType = ProductType.UNKNOWN
    product_name: str = ""
    vegetarian_status: VegetarianStatus = VegetarianStatus.UNCLEAR
    health_score: int = Field(default=0, ge=0, le=100)
    health_insight: str = ""
    score_explanation: str = ""
    serving_description: str | None = None
    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    total_fat: float | None = None
    fiber: float | None = None
    sugar: SugarInfo = Field(default_factory=SugarInfo)
    allergens: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    preservatives: list[Concern] = Field(default_factory=list)
    additives: list[Concern] = Field(default_factory=list)
    active_ingredients: list[str] = Field(default_factory=list)
    dosage: str | None = None
    usage_instructions: str | None = None
    warnings: list[str] = Field(default_factory=list)
    symptoms: list[str] = Field(default_factory=list)
    image_url: str | None = None
    brands: str | None = None
    categories: str | None = None
    source: Literal["barcode", "vision"] = "vision"

    @field_validator("product_type", mode="before")
    @classmethod
    def _product_type(cls, value: object) -> ProductType:
        if isinstance(value, ProductType):
            return value
        text = str(value or "").strip().lower()
        for member in ProductType:
            if member.value.lower() == text:
                return member
        return ProductType.UNKNOWN

    @field_validator("vegetarian_status", mode="before")
    @classmethod
    def _vegetarian_status(cls, value: object) -> VegetarianStatus:
        if isinstance(value, VegetarianStatus):
            return value
        text = str(value or "").strip().lower().replace(" ", "-")
        for member in VegetarianStatus:
            if member.value.lower() == text:
                return member
        return VegetarianStatus.UNCLEAR

    @field_validator("health_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> int:
        number = coerce_optional_float(value)
        if number is None:
            return 0
        return max(0, min(100, round(number)))

    @field_validator(
        "calories", "protein", "carbohydrates", "total_fat", "fiber", mode="before"
    )
    @classmethod
    def _nullable_number(cls, value: object) -> float | None:
        return coerce_optional_float(value)

    @field_validator("sugar", mode="before")
    @classmethod
    def _sugar(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, int | float | str) and not isinstance(value, bool):
            return {"label_sugar": value}
        return value

    @field_validator(
        "allergens",
        "alternatives",
        "active_ingredients",
        "warnings",
        "symptoms",
        mode="before",
    )
    @classmethod
    def _string_list(cls, value: object) -> list[str]:
        return _as_str_list(value)

    @field_validator("preservatives", "additives", mode="before")
    @classmethod
    def _concerns(cls, value: object) -> list[object]:
        if not isinstance(value, list):
            return []
        return [{"name": item} if isinstance(item, str) else item for item in value]

    @field_validator("dosage", "usage_instructions", mode="before")
    @classmethod
    def _optional_text(cls, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, list):
            return "; ".join(str(item) for item in value)
        return str(value)

    @property
    def is_medicine(self) -> bool:
        """Return True for medicine and supplement records."""
        return self.product_type is ProductType.MEDICINE


@dataclass(frozen=True)
class BarcodeCapture:
    """A decoded barcode from the scanner."""

    code: str
    symbology: str | None = None


@dataclass(frozen=True)
class ImageCapture:
    """Raw photo bytes of a label, package or pill box."""

    image_bytes: bytes


Capture = BarcodeCapture | ImageCapture


@dataclass(frozen=True)
class DietProfile:
    """Dietary context used to personalize image analysis."""

    diet_type: str = "Vegetarian"
    goal: str = "General Health"


def coerce_optional_float(value: object) -> float | None:
    """Convert a loosely typed number to float, keeping absence as None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_str_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return []
