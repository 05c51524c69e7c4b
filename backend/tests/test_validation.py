"""
Validation tests.

Verifies:
- Product payload rules apply in precedence order (first failure wins)
- Cost is optional, price is mandatory and positive
- Size-tracked payloads need a size type and clean size labels
- Register inputs (opening balance, movements) are normalized
"""

from decimal import Decimal

import pytest

from armonia.validation import (
    INVALID_COST,
    INVALID_PRICE,
    INVALID_PRODUCT_TYPE,
    INVALID_SIZE_TYPE,
    INVALID_SIZES,
    MISSING_REQUIRED_FIELDS,
    ValidationError,
    parse_cost,
    parse_decimal,
    parse_money,
    parse_price,
    require_valid_product,
    validate_movement,
    validate_opening_balance,
    validate_product_data,
)


def _payload(**overrides):
    data = {
        "name": "Linen shirt",
        "sku": "SH-001",
        "price": 10,
        "category": "shirts",
        "product_type": "apparel",
    }
    data.update(overrides)
    return data


# =============================================================================
# PRODUCT PAYLOADS
# =============================================================================


class TestValidateProductData:

    def test_minimal_payload_is_valid(self):
        result = validate_product_data(_payload())
        assert result.is_valid
        assert result.error is None

    @pytest.mark.parametrize("field", ["name", "sku", "price", "category", "product_type"])
    def test_missing_required_field(self, field):
        data = _payload()
        del data[field]
        assert validate_product_data(data).error == MISSING_REQUIRED_FIELDS

    @pytest.mark.parametrize("blank", ["", "   ", None])
    def test_blank_required_field(self, blank):
        assert validate_product_data(_payload(name=blank)).error == MISSING_REQUIRED_FIELDS

    def test_none_payload(self):
        assert validate_product_data(None).error == MISSING_REQUIRED_FIELDS

    def test_unknown_product_type(self):
        assert validate_product_data(_payload(product_type="shoes")).error == INVALID_PRODUCT_TYPE

    @pytest.mark.parametrize("price", [0, -5, "abc", "0", True, float("nan")])
    def test_invalid_price(self, price):
        assert validate_product_data(_payload(price=price)).error == INVALID_PRICE

    def test_price_as_numeric_string(self):
        assert validate_product_data(_payload(price="19.99")).is_valid

    @pytest.mark.parametrize("cost", [None, "", 0, "0", 4.5])
    def test_optional_cost_accepted(self, cost):
        assert validate_product_data(_payload(cost=cost)).is_valid

    @pytest.mark.parametrize("cost", [-1, "free"])
    def test_invalid_cost(self, cost):
        assert validate_product_data(_payload(cost=cost)).error == INVALID_COST

    def test_precedence_missing_before_type(self):
        data = _payload(product_type="shoes")
        del data["sku"]
        assert validate_product_data(data).error == MISSING_REQUIRED_FIELDS

    def test_precedence_type_before_price(self):
        result = validate_product_data(_payload(product_type="shoes", price=-1))
        assert result.error == INVALID_PRODUCT_TYPE

    def test_precedence_price_before_cost(self):
        result = validate_product_data(_payload(price=0, cost=-1))
        assert result.error == INVALID_PRICE

    def test_size_tracked_needs_size_type(self):
        data = _payload(has_sizes=True, sizes=[{"size": "S", "quantity": 1}])
        assert validate_product_data(data).error == INVALID_SIZE_TYPE

    def test_size_type_ignored_without_sizes(self):
        assert validate_product_data(_payload(has_sizes=False, size_type="bogus")).is_valid

    def test_duplicate_size_labels(self):
        data = _payload(
            has_sizes=True,
            size_type="letter",
            sizes=[{"size": "M", "quantity": 1}, {"size": " M ", "quantity": 2}],
        )
        assert validate_product_data(data).error == INVALID_SIZES

    def test_blank_size_label(self):
        data = _payload(has_sizes=True, size_type="number", sizes=[{"size": "", "quantity": 1}])
        assert validate_product_data(data).error == INVALID_SIZES

    def test_size_tracked_with_empty_list_is_valid(self):
        assert validate_product_data(_payload(has_sizes=True, size_type="letter", sizes=[])).is_valid

    def test_require_valid_product_raises_reason(self):
        with pytest.raises(ValidationError, match=INVALID_PRICE):
            require_valid_product(_payload(price=0))


class TestParsing:

    def test_parse_decimal_rejects_bool(self):
        assert parse_decimal(True) is None

    def test_parse_decimal_from_float_is_exact_text(self):
        assert parse_decimal(0.1) == Decimal("0.1")

    def test_parse_cost_blank_is_none(self):
        assert parse_cost("  ") is None
        assert parse_cost(None) is None

    def test_parse_cost_unparseable_is_none(self):
        assert parse_cost("n/a") is None

    def test_parse_price(self):
        assert parse_price("29.90") == Decimal("29.90")
        with pytest.raises(ValidationError):
            parse_price(0)


# =============================================================================
# REGISTER INPUT
# =============================================================================


class TestRegisterInput:

    def test_opening_balance_required(self):
        with pytest.raises(ValidationError, match="opening_balance required"):
            validate_opening_balance(None)

    def test_opening_balance_zero_allowed(self):
        assert validate_opening_balance(0) == Decimal("0.00")

    def test_opening_balance_negative(self):
        with pytest.raises(ValidationError):
            validate_opening_balance(-1)

    def test_parse_money_quantizes(self):
        assert parse_money("10.239", "amount") == Decimal("10.24")

    def test_parse_money_allow_negative(self):
        assert parse_money(-2, "expected_balance", allow_negative=True) == Decimal("-2.00")

    def test_movement_normalized(self):
        movement_type, amount, concept = validate_movement("outflow", "20", "  petty cash ")
        assert movement_type == "OUTFLOW"
        assert amount == Decimal("20.00")
        assert concept == "petty cash"

    @pytest.mark.parametrize(
        "movement_type,amount,concept",
        [
            ("TRANSFER", 10, "x"),
            ("INFLOW", 0, "x"),
            ("INFLOW", -3, "x"),
            ("INFLOW", "abc", "x"),
            ("INFLOW", 10, "   "),
            (None, 10, "x"),
        ],
    )
    def test_movement_rejected(self, movement_type, amount, concept):
        with pytest.raises(ValidationError):
            validate_movement(movement_type, amount, concept)
