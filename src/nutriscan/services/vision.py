"""Image analysis provider using a multimodal LLM."""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Protocol

import pydantic

from nutriscan.domain.errors import MalformedResponseError, ValidationError
from nutriscan.domain.products import (
    DietProfile,
    ProductRecord,
    coerce_optional_float,
)
from nutriscan.services.retry import classify_provider_failure, with_retry

_logger = logging.getLogger(__name__)

FOOD_SCHEMA_HINT = """{
  "productType": "Food",
  "productName": "short name",
  "vegetarianStatus": "Vegetarian | Non-Vegetarian | Vegan | Unclear",
  "healthScore": 0-100,
  "healthInsight": "verdict in at most 10 words",
  "scoreExplanation": "one sentence explaining the score",
  "servingDescription": "e.g. 1 bar, 30g",
  "calories": kcal or null,
  "protein": grams or null,
  "carbohydrates": grams or null,
  "totalFat": grams or null,
  "fiber": grams or null,
  "sugar": {"labelSugar": grams or null, "hiddenSugars": ["..."]},
  "allergens": ["..."],
  "alternatives": ["Name : Reason"],
  "preservatives": [{"name": "...", "concern": "..."}],
  "additives": [{"name": "...", "concern": "..."}]
}"""

MEDICINE_SCHEMA_HINT = """{
  "productType": "Medicine",
  "productName": "short name",
  "vegetarianStatus": "Vegetarian | Non-Vegetarian | Vegan | Unclear",
  "healthScore": 0-100 (100 = safe and clearly labelled, 50 = use with caution),
  "healthInsight": "primary use in at most 3 words",
  "scoreExplanation": "one plain-language sentence on what it does",
  "activeIngredients": ["e.g. Paracetamol 500mg"],
  "dosage": "recommended dosage if visible",
  "usageInstructions": "brief usage instructions",
  "warnings": ["side effects or warnings"],
  "symptoms": ["conditions it treats"],
  "servingDescription": null,
  "calories": null, "protein": null, "carbohydrates": null,
  "totalFat": null, "fiber": null,
  "sugar": {"labelSugar": null, "hiddenSugars": []},
  "allergens": [], "alternatives": [], "preservatives": [], "additives": []
}"""


class VisionClient(Protocol):
    """Interface for multimodal LLM calls returning free text."""

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
        timeout_seconds: float,
    ) -> str:
        """Return the model's raw text reply."""


@dataclass
class VisionService:
    """Service that prompts the vision model and decodes its reply."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool
    timeout_seconds: float = 45.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0

    async def analyze(
        self, image_bytes: bytes, profile: DietProfile | None = None
    ) -> ProductRecord:
        """Analyze a label, package or pill box photo into a product record."""
        if not image_bytes:
            raise ValidationError("Image is empty.")
        data_url = _to_data_url(image_bytes)
        prompt = build_prompt(profile or DietProfile())
        try:
            text = await with_retry(
                lambda: self.client.analyze(
                    model=self.model,
                    reasoning_effort=self.reasoning_effort,
                    store=self.store,
                    image_data_url=data_url,
                    prompt=prompt,
                    timeout_seconds=self.timeout_seconds,
                ),
                self.retry_attempts,
                self.retry_delay_seconds,
                action="image analysis",
            )
        except Exception as exc:
            classified = classify_provider_failure(exc)
            if classified is None or classified is exc:
                raise
            _logger.error("Image analysis failed: %s", classified.user_message)
            raise classified from exc

        payload = extract_json_object(text)
        if coerce_optional_float(payload.get("healthScore")) is None:
            raise MalformedResponseError("Vision reply has no numeric healthScore")
        try:
            return ProductRecord.model_validate({**payload, "source": "vision"})
        except pydantic.ValidationError as exc:
            raise MalformedResponseError(
                f"Vision reply does not match the product schema: {exc}"
            ) from exc


def build_prompt(profile: DietProfile) -> str:
    """Build the fixed instruction prompt with the user's dietary context."""
    return (
        "Analyze this image (nutrition label, food package, medicine box or "
        "supplement bottle) and reply with exactly one JSON object.\n\n"
        'First decide the type: "Food" or "Medicine".\n\n'
        "For food or beverages, focus on nutrition, ingredients and health "
        f"impact using this shape:\n{FOOD_SCHEMA_HINT}\n\n"
        "For medicines or supplements, focus on active ingredients, usage and "
        f"safety using this shape:\n{MEDICINE_SCHEMA_HINT}\n\n"
        "User profile:\n"
        f"- Diet: {profile.diet_type}\n"
        f"- Goal: {profile.goal}\n\n"
        "Rules:\n"
        "- Reply with the JSON object only, no markdown or backticks.\n"
        '- If the type is unclear, use the food shape with productType "Unknown".\n'
        "- Use null for any nutrient that is not visible; never guess zero.\n"
        "- For medicines, keep healthInsight and scoreExplanation in simple, "
        "non-technical language."
    )


def extract_json_object(text: str) -> dict[str, object]:
    """Decode the first top-level balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals do not count toward the balance. No
    repair is attempted: a missing span or invalid JSON is fatal.
    """
    start = text.find("{")
    if start < 0:
        raise MalformedResponseError("No JSON object found in vision reply")

    depth = 0
    in_string = False
    escaped = False
    end = -1
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index + 1
                break
    if end < 0:
        raise MalformedResponseError("Unbalanced JSON object in vision reply")

    try:
        decoded = json.loads(text[start:end])
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON in vision reply: {exc}") from exc
    if not isinstance(decoded, dict):
        raise MalformedResponseError("Vision reply JSON is not an object")
    return decoded


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
