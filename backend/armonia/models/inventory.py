from __future__ import annotations

from ..extensions import db
from armonia.time_utils import to_utc_z

PRODUCT_TYPES = ("apparel", "other")
SIZE_TYPES = ("letter", "number")


def _money(value):
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN:
    - has_sizes=False: stock is the stored value, changed by simple deltas.
    - has_sizes=True: stock is DERIVED, always equal to SUM(product_sizes.quantity).
      It only changes through size variant writes followed by a recompute.

    SKU and barcode are globally unique. size_type is only meaningful for
    size-tracked products and is stored as NULL otherwise.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price > 0", name="ck_products_price_positive"),
        db.CheckConstraint("cost IS NULL OR cost >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint(
            "product_type IN ('apparel', 'other')", name="ck_products_product_type"
        ),
        db.CheckConstraint(
            "size_type IS NULL OR size_type IN ('letter', 'number')", name="ck_products_size_type"
        ),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(36), primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    cost = db.Column(db.Numeric(12, 2), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(128), nullable=False)
    product_type = db.Column(db.String(16), nullable=False)

    has_sizes = db.Column(db.Boolean, nullable=False, default=False)
    size_type = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sizes = db.relationship(
        "ProductSize",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSize.size",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "cost": _money(self.cost),
            "price": _money(self.price),
            "stock": self.stock,
            "category": self.category,
            "product_type": self.product_type,
            "barcode": self.barcode,
            "min_stock": self.min_stock,
            "has_sizes": self.has_sizes,
            "size_type": self.size_type,
            "sizes": [s.to_dict() for s in self.sizes] if self.has_sizes else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductSize(db.Model):
    """
    Per-size quantity for a size-tracked product.

    OWNERSHIP: Rows belong to exactly one product and are replaced wholesale
    (delete + insert) whenever the product is updated with a size list.
    """
    __tablename__ = "product_sizes"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", name="uq_product_sizes_product_size"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.String(36),
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    size = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="sizes")

    def __repr__(self) -> str:
        return f"<ProductSize product_id={self.product_id} size={self.size!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {"size": self.size, "quantity": self.quantity}
