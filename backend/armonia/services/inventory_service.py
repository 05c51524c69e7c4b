# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/armonia/services/inventory_service.py
"""
Armonia Inventory Invariants (authoritative)

Stock model:
- A product WITHOUT sizes stores its stock directly; it changes by deltas
  (update_stock_simple) and the write itself is guarded by has_sizes = false.
- A product WITH sizes derives its stock: products.stock == SUM(product_sizes.quantity)
  after every write completes. The only way to change it is to write a size
  row and then recompute the aggregate (update_stock_by_size), or to replace
  the whole size list (update_product).

Size lists are replaced, never merged: update_product deletes every size row
for the product and inserts the submitted list.

Every multi-row sequence runs inside concurrency.atomic(), so a product row
is never committed without its size rows (and vice versa).

Quantities:
- Malformed size quantities count as 0 unless STRICT_SIZE_QUANTITIES is on.
- Negative deltas are allowed (sales). Whether a delta may drive a quantity
  below zero is decided by NEGATIVE_STOCK_POLICY: allow | clamp | reject.
"""
from __future__ import annotations

import logging
import math
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from flask import current_app
from sqlalchemy import delete, func, update

from ..extensions import db
from ..models import Product, ProductSize
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_cost,
    parse_price,
)
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)

NEGATIVE_STOCK_POLICIES = ("allow", "clamp", "reject")


class ProductNotFoundError(NotFoundError):
    """Raised when a product id does not exist."""

    def __init__(self, product_id: str):
        super().__init__("Product not found")
        self.product_id = product_id


class SizeNotFoundError(NotFoundError):
    """Raised when a product has no size row with the given label."""

    def __init__(self, product_id: str, size: str):
        super().__init__(f"Size '{size}' not found for product")
        self.product_id = product_id
        self.size = size


class SizeTrackedProductError(ConflictError):
    """Raised when a simple stock delta targets a size-tracked product."""


class InsufficientStockError(ConflictError):
    """Raised by the 'reject' policy when a delta would go below zero."""


# =============================================================================
# STOCK ARITHMETIC (pure)
# =============================================================================

def coerce_quantity(value: Any, *, strict: bool = False) -> int:
    """
    Turn a submitted quantity into an int.

    Ints pass through, integral-looking strings and numbers are truncated
    toward zero, anything else becomes 0 (or raises in strict mode).
    """
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        return value
    elif isinstance(value, float):
        parsed = int(value) if math.isfinite(value) else None
    elif isinstance(value, Decimal):
        parsed = int(value) if value.is_finite() else None
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = int(text)
        except ValueError:
            try:
                number = Decimal(text)
                parsed = int(number) if number.is_finite() else None
            except InvalidOperation:
                parsed = None
    else:
        parsed = None

    if parsed is None:
        if strict:
            raise ValidationError("invalid size quantity")
        return 0
    return parsed


def _variant_field(variant: Any, name: str) -> Any:
    if isinstance(variant, Mapping):
        return variant.get(name)
    return getattr(variant, name, None)


def compute_total_stock(
    has_sizes: bool,
    sizes: Iterable[Any] | None,
    fallback_stock: Any,
    *,
    strict: bool = False,
) -> int:
    """
    Aggregate stock for a product.

    Not size-tracked, or no size list: the fallback stock (missing -> 0).
    Otherwise: the sum of every size quantity.
    """
    if not has_sizes or not isinstance(sizes, (list, tuple)) or len(sizes) == 0:
        if fallback_stock is None:
            return 0
        return coerce_quantity(fallback_stock)

    return sum(coerce_quantity(_variant_field(s, "quantity"), strict=strict) for s in sizes)


def resolve_negative_stock_policy(policy: str | None = None) -> str:
    if policy is None:
        policy = current_app.config.get("NEGATIVE_STOCK_POLICY", "allow")
    policy = str(policy).lower()
    if policy not in NEGATIVE_STOCK_POLICIES:
        raise ValueError(f"Unknown negative stock policy: {policy}")
    return policy


def apply_stock_delta(current: int, delta: int, policy: str) -> int:
    """
    New quantity after applying delta under the given policy.

    Only decreases are policed; an increase is always applied as-is.
    """
    new_value = current + delta
    if delta >= 0 or new_value >= 0 or policy == "allow":
        return new_value
    if policy == "clamp":
        return 0
    raise InsufficientStockError(
        f"Insufficient stock: {current} available, requested change {delta}"
    )


def _parse_delta(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError("quantity must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError("quantity must be an integer")


def _strict_quantities() -> bool:
    return bool(current_app.config.get("STRICT_SIZE_QUANTITIES", False))


# =============================================================================
# PRODUCT WRITES
# =============================================================================

def _product_columns(data: Mapping[str, Any]) -> dict:
    has_sizes = bool(data.get("has_sizes"))
    barcode = data.get("barcode")
    if isinstance(barcode, str):
        barcode = barcode.strip() or None
    min_stock = data.get("min_stock")

    return {
        "name": str(data["name"]).strip(),
        "sku": str(data["sku"]).strip(),
        "cost": parse_cost(data.get("cost")),
        "price": parse_price(data.get("price")),
        "category": str(data["category"]).strip(),
        "product_type": data["product_type"],
        "barcode": barcode or None,
        "min_stock": coerce_quantity(min_stock) if min_stock is not None else 0,
        "has_sizes": has_sizes,
        "size_type": (data.get("size_type") or None) if has_sizes else None,
    }


def _size_rows(product_id: str, sizes: Iterable[Any], *, strict: bool) -> list[ProductSize]:
    return [
        ProductSize(
            product_id=product_id,
            size=str(_variant_field(s, "size")).strip(),
            quantity=coerce_quantity(_variant_field(s, "quantity"), strict=strict),
        )
        for s in sizes
    ]


def create_product(data: Mapping[str, Any]) -> str:
    """
    Create a product and, for size-tracked products, its size rows.

    Both writes share one transaction. Returns the new product id.

    Raises:
        ValidationError: price/cost/quantity cannot be parsed
        DuplicateValueError: SKU or barcode already exists
    """
    strict = _strict_quantities()
    columns = _product_columns(data)
    sizes = data.get("sizes") or []

    product_id = str(uuid.uuid4())
    total_stock = compute_total_stock(columns["has_sizes"], sizes, data.get("stock"), strict=strict)

    with atomic() as session:
        session.add(Product(id=product_id, stock=total_stock, **columns))
        session.flush()  # product row must exist before its sizes

        if columns["has_sizes"] and sizes:
            session.add_all(_size_rows(product_id, sizes, strict=strict))

    logger.info("Created product %s sku=%s stock=%s", product_id, columns["sku"], total_stock)
    return product_id


def update_product(product_id: str, data: Mapping[str, Any]) -> None:
    """
    Overwrite a product and replace its size list.

    Existing size rows are always deleted; the submitted list is inserted
    only when the product is size-tracked.

    Raises:
        ProductNotFoundError: unknown product id
        DuplicateValueError: SKU or barcode collides with another product
    """
    strict = _strict_quantities()
    columns = _product_columns(data)
    sizes = data.get("sizes") or []
    total_stock = compute_total_stock(columns["has_sizes"], sizes, data.get("stock"), strict=strict)

    with atomic() as session:
        product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)

        for key, value in columns.items():
            setattr(product, key, value)
        product.stock = total_stock

        session.execute(
            delete(ProductSize)
            .where(ProductSize.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        session.expire(product, ["sizes"])

        if columns["has_sizes"] and sizes:
            session.add_all(_size_rows(product_id, sizes, strict=strict))

    logger.info("Updated product %s stock=%s has_sizes=%s", product_id, total_stock, columns["has_sizes"])


def delete_product(product_id: str) -> bool:
    """Delete a product and its size rows. Returns False if it did not exist."""
    with atomic() as session:
        product = session.get(Product, product_id)
        if product is None:
            return False
        session.delete(product)

    logger.info("Deleted product %s", product_id)
    return True


# =============================================================================
# STOCK ADJUSTMENTS
# =============================================================================

def update_stock_simple(product_id: str, quantity: Any, *, policy: str | None = None) -> int:
    """
    Add quantity (may be negative) to a product without sizes.

    The UPDATE itself carries "has_sizes = false", so a size-tracked
    product's stock can never be changed through this path.

    Returns the new stock.

    Raises:
        ProductNotFoundError: unknown product id
        SizeTrackedProductError: product is tracked by size
        InsufficientStockError: policy is 'reject' and stock would go negative
    """
    delta = _parse_delta(quantity)
    policy = resolve_negative_stock_policy(policy)

    with atomic() as session:
        product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.has_sizes:
            raise SizeTrackedProductError(
                "Stock of a size-tracked product can only change through its sizes"
            )

        new_stock = apply_stock_delta(product.stock, delta, policy)
        applied = new_stock - product.stock

        result = session.execute(
            update(Product)
            .where(Product.id == product_id, Product.has_sizes.is_(False))
            .values(stock=Product.stock + applied)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SizeTrackedProductError(
                "Stock of a size-tracked product can only change through its sizes"
            )

    logger.info("Stock for product %s changed by %s (requested %s) -> %s", product_id, applied, delta, new_stock)
    return new_stock


def _recompute_product_stock(session, product_id: str) -> int:
    total = session.query(
        func.coalesce(func.sum(ProductSize.quantity), 0)
    ).filter(ProductSize.product_id == product_id).scalar()
    total = int(total or 0)

    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=total)
        .execution_options(synchronize_session=False)
    )
    return total


def update_stock_by_size(product_id: str, size: Any, quantity: Any, *, policy: str | None = None) -> int:
    """
    Add quantity (may be negative) to one size, then recompute the product total.

    This write-then-recompute pair is the canonical reconciliation path and
    runs in a single transaction. Returns the new product stock.

    Raises:
        ProductNotFoundError: unknown product id
        SizeNotFoundError: product has no size with this label
        InsufficientStockError: policy is 'reject' and the size would go negative
    """
    delta = _parse_delta(quantity)
    policy = resolve_negative_stock_policy(policy)
    label = str(size or "").strip()
    if not label:
        raise ValidationError("size required")

    with atomic() as session:
        product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)

        variant = lock_for_update(
            session.query(ProductSize).filter_by(product_id=product_id, size=label)
        ).first()
        if variant is None:
            raise SizeNotFoundError(product_id, label)

        new_quantity = apply_stock_delta(variant.quantity, delta, policy)
        session.execute(
            update(ProductSize)
            .where(ProductSize.id == variant.id)
            .values(quantity=ProductSize.quantity + (new_quantity - variant.quantity))
            .execution_options(synchronize_session=False)
        )

        total = _recompute_product_stock(session, product_id)

    logger.info("Size %s of product %s changed by %s -> %s (total %s)", label, product_id, delta, new_quantity, total)
    return total


def recalculate_stock(product_id: str) -> int:
    """
    Re-derive products.stock from its size rows.

    Products without sizes are left untouched and their stored stock returned.
    """
    with atomic() as session:
        product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFoundError(product_id)
        if not product.has_sizes:
            return product.stock
        return _recompute_product_stock(session, product_id)


# =============================================================================
# READS
# =============================================================================

def get_product_with_sizes(product_id: str) -> Product | None:
    return db.session.get(Product, product_id)


def get_product_by_barcode(barcode: str) -> Product | None:
    return db.session.query(Product).filter_by(barcode=barcode).first()


def list_products() -> list[Product]:
    """All products, newest first."""
    return (
        db.session.query(Product)
        .order_by(Product.created_at.desc(), Product.name.asc())
        .all()
    )


# =============================================================================
# RECONCILIATION
# =============================================================================

def find_products_missing_sizes() -> list[Product]:
    """
    Size-tracked products with no size rows at all.

    These are the footprint of an interrupted create: the product row was
    written but its size rows never were.
    """
    return (
        db.session.query(Product)
        .filter(Product.has_sizes.is_(True), ~Product.sizes.any())
        .order_by(Product.sku.asc())
        .all()
    )


def find_stock_drift() -> list[dict]:
    """Size-tracked products whose stored stock differs from the sum of their sizes."""
    totals = (
        db.session.query(
            ProductSize.product_id.label("product_id"),
            func.sum(ProductSize.quantity).label("sizes_total"),
        )
        .group_by(ProductSize.product_id)
        .subquery()
    )
    sizes_total = func.coalesce(totals.c.sizes_total, 0)

    rows = (
        db.session.query(Product.id, Product.sku, Product.stock, sizes_total.label("sizes_total"))
        .outerjoin(totals, totals.c.product_id == Product.id)
        .filter(Product.has_sizes.is_(True), Product.stock != sizes_total)
        .order_by(Product.sku.asc())
        .all()
    )
    return [
        {"product_id": r.id, "sku": r.sku, "stock": r.stock, "sizes_total": int(r.sizes_total)}
        for r in rows
    ]


def reconcile_stock(*, fix: bool = False) -> dict:
    """
    Report (and optionally repair) stock inconsistencies.

    Drift on products that still have size rows is repaired by recomputing
    the aggregate. Products with no size rows are only reported: their size
    list has to be re-submitted, recomputing would just zero their stock.
    """
    missing = find_products_missing_sizes()
    missing_ids = {p.id for p in missing}
    drift = [d for d in find_stock_drift() if d["product_id"] not in missing_ids]

    fixed = []
    if fix:
        for entry in drift:
            new_total = recalculate_stock(entry["product_id"])
            logger.warning(
                "Reconciled stock for product %s (%s): %s -> %s",
                entry["product_id"], entry["sku"], entry["stock"], new_total,
            )
            fixed.append(entry["product_id"])

    return {
        "missing_sizes": [{"product_id": p.id, "sku": p.sku, "stock": p.stock} for p in missing],
        "drift": drift,
        "fixed": fixed,
    }
