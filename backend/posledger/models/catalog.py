from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "isActive": self.is_active,
        }


class Product(db.Model):
    """
    Catalog product.

    The checkout core only reads products; prices and names are copied onto
    transaction items at sale time so receipts survive later catalog edits.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Whole currency units (IDR has no minor unit in practice)
    price = db.Column(db.Integer, nullable=False)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    stock = db.relationship("Stock", uselist=False, back_populates="product")

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price": self.price,
            "categoryId": self.category_id,
            "isActive": self.is_active,
            "stock": self.stock.quantity if self.stock else 0,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Stock(db.Model):
    """
    On-hand quantity, one row per product.

    quantity is guarded by a CHECK constraint and every decrement is a
    conditional UPDATE, so concurrent checkouts cannot drive it negative.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_stocks_product"),
        db.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="stock")

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "updatedAt": to_utc_z(self.updated_at),
        }


class ProductActivityLog(db.Model):
    """Append-only history of stock and catalog changes per product."""
    __tablename__ = "product_activity_logs"
    __table_args__ = (
        db.Index("ix_product_activity_logs_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # STOCK_ADDED, STOCK_REMOVED, CREATED, UPDATED, PRICE_CHANGED, ...
    activity_type = db.Column(db.String(32), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    changes = db.Column(db.JSON, nullable=True)
    previous_value = db.Column(db.Integer, nullable=True)
    new_value = db.Column(db.Integer, nullable=True)

    user_id = db.Column(db.Integer, nullable=True)
    user_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "activityType": self.activity_type,
            "description": self.description,
            "changes": self.changes,
            "previousValue": self.previous_value,
            "newValue": self.new_value,
            "userId": self.user_id,
            "userName": self.user_name,
            "createdAt": to_utc_z(self.created_at),
        }
