from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .models import PRODUCT_TYPES, SIZE_TYPES, MOVEMENT_TYPES


# Maximum money value: 9,999,999,999.99 (fits Numeric(12, 2))
MAX_MONEY = Decimal("9999999999.99")

MISSING_REQUIRED_FIELDS = "missing required fields"
INVALID_PRODUCT_TYPE = "invalid product type"
INVALID_PRICE = "invalid price"
INVALID_COST = "invalid cost"
INVALID_SIZE_TYPE = "invalid size type"
INVALID_SIZES = "invalid sizes"

REQUIRED_PRODUCT_FIELDS = ("name", "sku", "price", "category", "product_type")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU, register already open)."""


class NotFoundError(ValueError):
    """404-level missing entity (unknown product, no open register)."""


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str | None = None


VALID = ValidationResult(True)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def parse_decimal(value: Any) -> Decimal | None:
    """
    Parse a money-ish value into a Decimal.

    Returns None for anything that is not a finite number. Booleans are
    rejected even though they are ints.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = Decimal(str(value))
    elif isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_cost(value: Any) -> Decimal | None:
    """Cost is optional: missing, blank or unparseable values become None."""
    if _is_blank(value):
        return None
    return parse_decimal(value)


def parse_price(value: Any) -> Decimal:
    price = parse_decimal(value)
    if price is None or price <= 0 or price > MAX_MONEY:
        raise ValidationError(INVALID_PRICE)
    return price


def validate_product_data(data: Mapping[str, Any] | None) -> ValidationResult:
    """
    Business rules for product create/update payloads.

    Precedence (first failure wins):
    1. Required fields present and non-empty
    2. product_type is a known value
    3. price is a number > 0
    4. cost, if supplied, is a number >= 0
    5. size-tracked products declare a known size_type
    6. size-tracked products have labelled, non-duplicated sizes

    Pure: never touches the database.
    """
    data = data or {}

    if any(_is_blank(data.get(field)) for field in REQUIRED_PRODUCT_FIELDS):
        return ValidationResult(False, MISSING_REQUIRED_FIELDS)

    if data.get("product_type") not in PRODUCT_TYPES:
        return ValidationResult(False, INVALID_PRODUCT_TYPE)

    price = parse_decimal(data.get("price"))
    if price is None or price <= 0 or price > MAX_MONEY:
        return ValidationResult(False, INVALID_PRICE)

    cost_raw = data.get("cost")
    if not _is_blank(cost_raw):
        cost = parse_decimal(cost_raw)
        if cost is None or cost < 0 or cost > MAX_MONEY:
            return ValidationResult(False, INVALID_COST)

    if data.get("has_sizes"):
        if data.get("size_type") not in SIZE_TYPES:
            return ValidationResult(False, INVALID_SIZE_TYPE)

        sizes = data.get("sizes") or []
        if not isinstance(sizes, (list, tuple)):
            return ValidationResult(False, INVALID_SIZES)
        seen = set()
        for entry in sizes:
            label = entry.get("size") if isinstance(entry, Mapping) else None
            if _is_blank(label):
                return ValidationResult(False, INVALID_SIZES)
            label = str(label).strip()
            if label in seen:
                return ValidationResult(False, INVALID_SIZES)
            seen.add(label)

    return VALID


def require_valid_product(data: Mapping[str, Any] | None) -> None:
    result = validate_product_data(data)
    if not result.is_valid:
        raise ValidationError(result.error)


# =============================================================================
# CASH REGISTER INPUT
# =============================================================================

def parse_money(value: Any, field: str, *, allow_negative: bool = False) -> Decimal:
    amount = parse_decimal(value)
    if amount is None:
        raise ValidationError(f"{field} must be a number")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if abs(amount) > MAX_MONEY:
        raise ValidationError(f"{field} is too large")
    return amount.quantize(Decimal("0.01"))


def validate_opening_balance(value: Any) -> Decimal:
    if value is None:
        raise ValidationError("opening_balance required")
    return parse_money(value, "opening_balance")


def validate_movement(movement_type: Any, amount: Any, concept: Any) -> tuple[str, Decimal, str]:
    """Normalize a manual cash movement: (TYPE, amount > 0, concept)."""
    normalized_type = str(movement_type or "").strip().upper()
    if normalized_type not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")

    parsed = parse_money(amount, "amount")
    if parsed <= 0:
        raise ValidationError("amount must be greater than zero")

    if _is_blank(concept):
        raise ValidationError("concept required")

    return normalized_type, parsed, str(concept).strip()
