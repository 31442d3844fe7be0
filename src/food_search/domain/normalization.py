"""Normalization of Open Food Facts products into canonical food records."""

import math
import re

from food_search.domain.foods import UNKNOWN_PRODUCT_NAME, FoodRecord

_ALIAS_FIELDS = (
    "product_name",
    "product_name_de",
    "generic_name",
    "generic_name_de",
    "abbreviated_product_name",
    "abbreviated_product_name_de",
)

_NUTRIMENT_KEYS = {
    "calories": "energy-kcal_100g",
    "protein": "proteins_100g",
    "carbs": "carbohydrates_100g",
    "fat": "fat_100g",
    "fiber": "fiber_100g",
    "sugar": "sugars_100g",
    "sodium": "sodium_100g",
}

_NUMBER = r"(\d+(?:[.,]\d+)?)"
_UNIT = (
    r"(kilograms?|kg|milli(?:liter|litre)s?|ml|grams?|gr|g|lit(?:er|re)s?|l)"
)
_SERVING_WITH_UNIT = re.compile(
    _NUMBER + r"\s*" + _UNIT + r"(?![a-zäöüß])", re.IGNORECASE
)
_SERVING_BARE = re.compile(_NUMBER)

_UNIT_CONVERSIONS = {
    "g": (1.0, "g"),
    "ml": (1.0, "ml"),
    "kg": (1000.0, "g"),
    "l": (1000.0, "ml"),
}


def normalize_product(
    product: dict[str, object], fallback_code: str | None = None
) -> FoodRecord:
    """Build a FoodRecord from a raw product payload.

    ``fallback_code`` identifies products fetched by a known barcode whose
    payload omits ``code``. Raises ValueError when the payload cannot
    describe a product at all.
    """
    if not isinstance(product, dict):
        raise ValueError(f"Product payload must be an object, got {type(product)}")
    code = product.get("code") or fallback_code
    if code is None or not str(code).strip():
        raise ValueError("Product payload has no code")

    localized_name = _clean_text(product.get("product_name_de"))
    primary_name = _clean_text(product.get("product_name"))
    source_name = localized_name or primary_name or UNKNOWN_PRODUCT_NAME

    nutriments = product.get("nutriments") or {}
    if not isinstance(nutriments, dict):
        raise ValueError("Product nutriments must be an object")
    macros = {
        name: _to_float(nutriments.get(key)) for name, key in _NUTRIMENT_KEYS.items()
    }

    serving_size, serving_unit = parse_serving_size(product.get("serving_size"))

    return FoodRecord(
        identifier=str(code).strip(),
        source_name=source_name,
        localized_name=localized_name,
        brand=_first_brand(product.get("brands")),
        search_aliases=build_search_aliases(product),
        serving_size=serving_size,
        serving_unit=serving_unit,
        nutriscore_grade=_grade(product.get("nutriscore_grade")),
        nova_group=_to_int(product.get("nova_group")),
        ecoscore_grade=_grade(product.get("ecoscore_grade")),
        categories=_tags(product.get("categories_tags")),
        allergens=_tags(product.get("allergens_tags")),
        **macros,
    )


def build_search_aliases(product: dict[str, object]) -> frozenset[str]:
    """Collect every name variant, deduplicated case-insensitively."""
    seen: set[str] = set()
    aliases: list[str] = []
    for key in _ALIAS_FIELDS:
        name = _clean_text(product.get(key))
        if name is None or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        aliases.append(name)
    return frozenset(aliases)


def parse_serving_size(raw: object) -> tuple[float | None, str | None]:
    """Parse free-text serving sizes like "250 ml" or "1 slice (30g)".

    Kilograms become grams and liters become milliliters. Returns
    ``(None, None)`` when no quantity can be found.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None, None
    match = _SERVING_WITH_UNIT.search(raw)
    if match:
        amount, unit = match.group(1), _canonical_unit(match.group(2))
    else:
        match = _SERVING_BARE.search(raw)
        if not match:
            return None, None
        amount, unit = match.group(1), "g"
    size = _to_float(amount)
    if size is None:
        return None, None
    factor, normalized_unit = _UNIT_CONVERSIONS[unit]
    return size * factor, normalized_unit


def _clean_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _first_brand(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return _clean_text(value.split(",")[0])


def _grade(value: object) -> str | None:
    cleaned = _clean_text(value)
    return cleaned.upper() if cleaned else None


def _tags(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(tag for tag in value if isinstance(tag, str) and tag)


def _to_float(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_int(value: object) -> int | None:
    number = _to_float(value)
    if number is None:
        return None
    return int(number)


def _canonical_unit(raw_unit: str) -> str:
    unit = raw_unit.lower()
    if unit.startswith("k"):
        return "kg"
    if unit.startswith("m"):
        return "ml"
    if unit.startswith("g"):
        return "g"
    return "l"
