"""
Coordinate plausibility checks and address text clean-up for geocoding.

Jobs are dispatched inside a fixed service area. Coordinates outside it,
missing coordinates and the (0, 0) placeholder are all treated as unusable
so the job gets re-geocoded from its address.
"""

import math
import re
from types import MappingProxyType
from typing import Any, Dict, List, Optional

SERVICE_BOUNDS = MappingProxyType(
    {"min_lat": 29.0, "max_lat": 34.9, "min_lng": 34.0, "max_lng": 35.9}
)

COUNTRY_SUFFIXES = ("ישראל", "Israel")

_TRAILING_SUFFIX = re.compile(
    r"\s*[,.\-]?\s*(apartment|apt|floor|entrance|suite|unit|דירה|דיר|קומה|כניסה)"
    r"\s*(?:[^\W_]|[/\-])+$",
    re.IGNORECASE,
)
_LETTER_THEN_DIGIT = re.compile(r"([^\W\d_])(\d)")
_DIGIT_THEN_LETTER = re.compile(r"(\d)([^\W\d_])")


def parse_coord(value: Any) -> Optional[float]:
    """
    Coerce a coordinate to float.

    Returns None for None, blank strings, booleans and non-finite or
    unparsable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if math.isfinite(numeric) else None


def is_zero_zero(lat: Any, lng: Any) -> bool:
    parsed_lat = parse_coord(lat)
    parsed_lng = parse_coord(lng)
    if parsed_lat is None or parsed_lng is None:
        return False
    return parsed_lat == 0 and parsed_lng == 0


def is_in_service_bounds(lat: Any, lng: Any) -> bool:
    parsed_lat = parse_coord(lat)
    parsed_lng = parse_coord(lng)
    if parsed_lat is None or parsed_lng is None:
        return False
    return (
        SERVICE_BOUNDS["min_lat"] <= parsed_lat <= SERVICE_BOUNDS["max_lat"]
        and SERVICE_BOUNDS["min_lng"] <= parsed_lng <= SERVICE_BOUNDS["max_lng"]
    )


def is_usable_job_coords(lat: Any, lng: Any) -> bool:
    """True when both coordinates parse, are not (0, 0) and lie in the service area."""
    if parse_coord(lat) is None or parse_coord(lng) is None:
        return False
    if is_zero_zero(lat, lng):
        return False
    return is_in_service_bounds(lat, lng)


def _normalize_spacing(value: str) -> str:
    text = re.sub(r"[\r\n\t]+", " ", value or "")
    text = re.sub(r"[;|]+", ", ", text)
    text = re.sub(r"\s*,\s*", ", ", text)
    text = re.sub(r",+", ",", text)
    text = re.sub(r"\s+", " ", text).strip()
    return re.sub(r"^,\s*|\s*,$", "", text)


def _strip_trailing_suffix(value: str) -> str:
    return _TRAILING_SUFFIX.sub("", value or "").strip()


def _split_alpha_numeric(value: str) -> str:
    text = _LETTER_THEN_DIGIT.sub(r"\1 \2", value or "")
    text = _DIGIT_THEN_LETTER.sub(r"\1 \2", text)
    return re.sub(r"\s+", " ", text).strip()


def _infer_city_comma(value: str) -> str:
    # "Herzl 10 Tel Aviv" -> "Herzl 10, Tel Aviv"
    if not value or "," in value:
        return value

    tokens = [token for token in value.split(" ") if token.strip()]
    if len(tokens) < 3:
        return value

    number_index = next(
        (index for index, token in enumerate(tokens) if re.search(r"\d", token)), -1
    )
    if number_index < 0 or number_index >= len(tokens) - 1:
        return value

    street = " ".join(tokens[: number_index + 1]).strip()
    city = " ".join(tokens[number_index + 1 :]).strip()
    if not street or not city:
        return value
    return f"{street}, {city}"


def autofix_address_text(value: Any) -> Dict[str, Any]:
    """
    Clean free-text address input before geocoding.

    Steps run in order and each one that changes the text is reported:
    spacing, split_alpha_numeric, remove_trailing_suffix, add_city_comma,
    final_spacing.

    Returns:
        {"value": str, "changed": bool, "fixes": [str, ...]}
    """
    original = "" if value is None else str(value)
    if not original.strip():
        return {"value": "", "changed": False, "fixes": []}

    fixes: List[str] = []
    current = original

    for name, step in (
        ("spacing", _normalize_spacing),
        ("split_alpha_numeric", _split_alpha_numeric),
        ("remove_trailing_suffix", _strip_trailing_suffix),
        ("add_city_comma", _infer_city_comma),
    ):
        fixed = step(current)
        if fixed != current:
            fixes.append(name)
            current = fixed

    final_value = _normalize_spacing(current)
    if final_value != current:
        fixes.append("final_spacing")

    return {"value": final_value, "changed": final_value != original, "fixes": fixes}


def normalize_address_text(value: Any) -> str:
    return autofix_address_text(value)["value"]


def build_address_query_variants(value: Any) -> List[str]:
    """
    Geocoder query strings to try in order, without duplicates.

    The cleaned address first, then the same address with each country
    suffix appended.
    """
    normalized = normalize_address_text(value)
    if not normalized:
        return []

    base = _strip_trailing_suffix(normalized) or normalized
    candidates = [base] + [f"{base}, {suffix}" for suffix in COUNTRY_SUFFIXES]

    variants: List[str] = []
    for candidate in candidates:
        cleaned = _normalize_spacing(candidate)
        if cleaned and cleaned not in variants:
            variants.append(cleaned)
    return variants


def is_strict_address_format(value: Any) -> bool:
    """
    True for "<street> <number>, <city>" style addresses.

    The first comma-separated part must contain a street number and at
    least one further part must name the city.
    """
    normalized = normalize_address_text(value)
    if not normalized:
        return False

    parts = [part.strip() for part in normalized.split(",") if part.strip()]
    if len(parts) < 2:
        return False

    street, city = parts[0], ",".join(parts[1:]).strip()
    if not city:
        return False
    return bool(re.search(r"\d+", street))
