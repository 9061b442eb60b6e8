"""Barcode lookup provider backed by Open Food Facts."""

import logging
from dataclasses import dataclass

from nutriscan.adapters.openfoodfacts_client import OpenFoodFactsClient
from nutriscan.domain.errors import MalformedResponseError, ValidationError
from nutriscan.domain.products import ProductRecord, ProductType, SugarInfo
from nutriscan.services import scoring
from nutriscan.services.cache import Cache
from nutriscan.services.retry import classify_provider_failure, with_retry

_logger = logging.getLogger(__name__)


@dataclass
class BarcodeProductService:
    """Resolve barcodes into product records, deriving missing fields."""

    client: OpenFoodFactsClient
    cache: Cache
    retry_attempts: int = 2
    retry_delay_seconds: float = 1.0
    cache_ttl_seconds: int = 86400

    async def resolve(self, barcode: str) -> ProductRecord | None:
        """Return the product for ``barcode``, or None when it is unknown.

        An unknown code is a normal outcome: the caller is expected to fall
        back to photographing the label.
        """
        code = barcode.strip()
        if not code:
            raise ValidationError("Barcode is empty.")

        cache_key = f"off:product:{code}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, ProductRecord):
            return cached

        try:
            payload = await with_retry(
                lambda: self.client.get_product(code),
                self.retry_attempts,
                self.retry_delay_seconds,
                action=f"barcode lookup {code}",
            )
        except ValueError as exc:
            raise MalformedResponseError(
                f"Open Food Facts reply for {code} is not JSON: {exc}"
            ) from exc
        except Exception as exc:
            classified = classify_provider_failure(exc)
            if classified is None or classified is exc:
                raise
            raise classified from exc

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Open Food Facts reply for {code} is not an object"
            )
        product = payload.get("product")
        if payload.get("status") == 0 or not isinstance(product, dict):
            _logger.info("Barcode %s not found in Open Food Facts", code)
            return None

        record = build_product_record(product)
        self.cache.set(cache_key, record, ttl_seconds=self.cache_ttl_seconds)
        return record


def build_product_record(product: dict[str, object]) -> ProductRecord:
    """Normalize a raw Open Food Facts product into a ProductRecord."""
    nutrients = product.get("nutriments")
    if not isinstance(nutrients, dict):
        nutrients = {}
    score = scoring.health_score(product)
    return ProductRecord(
        product_type=ProductType.FOOD,
        product_name=str(product.get("product_name") or "Unknown Product"),
        vegetarian_status=scoring.vegetarian_status(product),
        health_score=score,
        health_insight=scoring.health_insight(score),
        score_explanation=scoring.score_explanation(product),
        serving_description=str(product.get("serving_size") or "100g"),
        calories=nutrients.get("energy-kcal_100g"),
        protein=nutrients.get("proteins_100g"),
        carbohydrates=nutrients.get("carbohydrates_100g"),
        total_fat=nutrients.get("fat_100g"),
        fiber=nutrients.get("fiber_100g"),
        sugar=SugarInfo(
            label_sugar=nutrients.get("sugars_100g"),
            hidden_sugars=scoring.hidden_sugars(product.get("ingredients_text")),
        ),
        allergens=scoring.allergens(product.get("allergens_tags")),
        alternatives=scoring.alternatives(product.get("categories")),
        preservatives=scoring.preservatives(product.get("additives_tags")),
        additives=scoring.additives(product.get("additives_tags")),
        image_url=_optional_str(product.get("image_url")),
        brands=_optional_str(product.get("brands")),
        categories=_optional_str(product.get("categories")),
        source="barcode",
    )


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
