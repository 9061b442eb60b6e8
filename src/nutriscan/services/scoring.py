"""Health scoring and field derivation for barcode lookups.

Open Food Facts gives per-100g nutrients and tag lists but no score or
narrative. Everything here is a pure function of the raw product payload.
"""

import re

from nutriscan.domain.products import (
    Concern,
    VegetarianStatus,
    coerce_optional_float,
)

NUTRISCORE_POINTS = {"a": 90, "b": 75, "c": 60, "d": 45, "e": 30}
UNKNOWN_GRADE_SCORE = 50
BASELINE_SCORE = 70
ADDITIVE_PENALTY = 3
MAX_ADDITIVE_PENALTY = 20
MANY_ADDITIVES = 3

# (nutrient key, ((exclusive threshold, score delta), ...)); first band wins.
_SCORE_BANDS = (
    ("sugars_100g", ((15, -15), (10, -10))),
    ("fat_100g", ((20, -10), (10, -5))),
    ("proteins_100g", ((10, 10), (5, 5))),
    ("fiber_100g", ((5, 10), (3, 5))),
)

_INSIGHT_BANDS = (
    (80, "Excellent nutritional choice!"),
    (60, "Good option with minor concerns"),
    (40, "Moderate - consume in moderation"),
)

_ISSUE_THRESHOLDS = (
    ("sugars_100g", 10, "high sugar"),
    ("fat_100g", 15, "high fat"),
)
_POSITIVE_THRESHOLDS = (
    ("proteins_100g", 8, "good protein"),
    ("fiber_100g", 4, "high fiber"),
)

MEAT_KEYWORDS = ("meat", "chicken", "beef", "pork")

SUGAR_ALIASES = (
    "dextrose",
    "fructose",
    "glucose",
    "maltose",
    "sucrose",
    "corn syrup",
    "high fructose",
    "agave",
    "honey",
    "molasses",
)

PRESERVATIVE_CONCERN = "May cause allergic reactions in sensitive individuals"
ADDITIVE_CONCERN = "Artificial additive"
MAX_CONCERNS = 5

CATEGORY_ALTERNATIVES = (
    (
        "snacks",
        (
            "Fresh fruits : Natural sugars and vitamins",
            "Nuts : Healthy fats and protein",
        ),
    ),
    (
        "beverages",
        (
            "Water : Zero calories, pure hydration",
            "Green tea : Antioxidants and metabolism boost",
        ),
    ),
    (
        "dairy",
        (
            "Greek yogurt : Higher protein, lower sugar",
            "Almond milk : Lower calories, lactose-free",
        ),
    ),
)
MAX_ALTERNATIVES = 3

_E_NUMBER = re.compile(r"^e(\d)")


def vegetarian_status(product: dict[str, object]) -> VegetarianStatus:
    """Classify from label tags first, then meat keywords in the ingredients."""
    labels = _tags(product.get("labels_tags"))
    if "en:vegan" in labels:
        return VegetarianStatus.VEGAN
    if "en:vegetarian" in labels:
        return VegetarianStatus.VEGETARIAN
    ingredients = str(product.get("ingredients_text") or "").lower()
    if any(keyword in ingredients for keyword in MEAT_KEYWORDS):
        return VegetarianStatus.NON_VEGETARIAN
    return VegetarianStatus.UNCLEAR


def health_score(product: dict[str, object]) -> int:
    """Return a 0-100 score from the Nutri-Score grade or the nutrients."""
    grade = product.get("nutriscore_grade")
    if grade:
        return NUTRISCORE_POINTS.get(str(grade).strip().lower(), UNKNOWN_GRADE_SCORE)

    nutrients = _nutriments(product)
    score = BASELINE_SCORE
    for key, bands in _SCORE_BANDS:
        value = _per_100g(nutrients, key)
        for threshold, delta in bands:
            if value > threshold:
                score += delta
                break

    additive_count = len(_tags(product.get("additives_tags")))
    score -= min(ADDITIVE_PENALTY * additive_count, MAX_ADDITIVE_PENALTY)
    return max(0, min(100, score))


def health_insight(score: int) -> str:
    """Return a short verdict for a score band."""
    for floor, verdict in _INSIGHT_BANDS:
        if score >= floor:
            return verdict
    return "High in unhealthy ingredients"


def score_explanation(product: dict[str, object]) -> str:
    """Summarize the nutrient issues and positives in one sentence."""
    nutrients = _nutriments(product)
    issues = [
        label
        for key, threshold, label in _ISSUE_THRESHOLDS
        if _per_100g(nutrients, key) > threshold
    ]
    if len(_tags(product.get("additives_tags"))) > MANY_ADDITIVES:
        issues.append("many additives")
    positives = [
        label
        for key, threshold, label in _POSITIVE_THRESHOLDS
        if _per_100g(nutrients, key) > threshold
    ]

    if issues and positives:
        return f"Contains {' and '.join(positives)} but has {' and '.join(issues)}."
    if issues:
        return f"Contains {', '.join(issues)}. Consider healthier alternatives."
    if positives:
        return f"Great choice! {' and '.join(positives)}."
    return "Moderate nutritional value."


def hidden_sugars(ingredients_text: object) -> list[str]:
    """Return sugar aliases found in the ingredient text, capitalized."""
    text = str(ingredients_text or "").lower()
    if not text:
        return []
    found: list[str] = []
    for alias in SUGAR_ALIASES:
        name = alias[0].upper() + alias[1:]
        if alias in text and name not in found:
            found.append(name)
    return found


def preservatives(additives_tags: object) -> list[Concern]:
    """Return E2xx/E3xx additives, at most five."""
    return [
        Concern(name=_tag_name(tag).upper(), concern=PRESERVATIVE_CONCERN)
        for tag in _tags(additives_tags)
        if _is_preservative(tag)
    ][:MAX_CONCERNS]


def additives(additives_tags: object) -> list[Concern]:
    """Return additives outside the preservative range, at most five."""
    return [
        Concern(name=_tag_name(tag).upper(), concern=ADDITIVE_CONCERN)
        for tag in _tags(additives_tags)
        if not _is_preservative(tag)
    ][:MAX_CONCERNS]


def alternatives(categories: object) -> list[str]:
    """Suggest healthier swaps based on category keywords."""
    text = str(categories or "").lower()
    suggestions: list[str] = []
    for keyword, options in CATEGORY_ALTERNATIVES:
        if keyword in text:
            suggestions.extend(options)
    return suggestions[:MAX_ALTERNATIVES]


def allergens(allergens_tags: object) -> list[str]:
    """Strip the language prefix from allergen tags."""
    return [_tag_name(tag) for tag in _tags(allergens_tags)]


def _is_preservative(tag: str) -> bool:
    match = _E_NUMBER.match(_tag_name(tag).lower())
    return match is not None and match.group(1) in {"2", "3"}


def _tag_name(tag: str) -> str:
    return tag.split(":", 1)[1] if ":" in tag else tag


def _tags(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(tag) for tag in value if tag]


def _nutriments(product: dict[str, object]) -> dict[str, object]:
    nutrients = product.get("nutriments")
    return nutrients if isinstance(nutrients, dict) else {}


def _per_100g(nutrients: dict[str, object], key: str) -> float:
    """Return a nutrient for threshold checks; absent values never cross one."""
    value = coerce_optional_float(nutrients.get(key))
    return value if value is not None else 0.0
