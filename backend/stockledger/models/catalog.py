from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product.

    stock_quantity is an aggregate: the sum of stock over every SKU of every
    variant. It is recomputed from the SKUs after each stock mutation, never
    incremented in place.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "stock_quantity": self.stock_quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class Variant(db.Model):
    """Colour/style variant of a product; groups its SKUs."""
    __tablename__ = "variants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    color = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("variants", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "color": self.color,
            "created_at": to_utc_z(self.created_at),
        }


class SKU(db.Model):
    """A size of a variant with its own stock count (never below zero)."""
    __tablename__ = "skus"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    size = db.Column(db.String(32), nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    variant = db.relationship("Variant", backref=db.backref("skus", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def product_id(self) -> int:
        return self.variant.product_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "sku": self.sku,
            "size": self.size,
            "stock_quantity": self.stock_quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
