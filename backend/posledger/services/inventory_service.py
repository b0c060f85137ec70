# Overview: Service-layer operations for stock; encapsulates business logic and database work.

"""
Inventory invariants (authoritative)

- Stock.quantity is the on-hand count; there is no reservation/hold concept.
- quantity never goes negative: every decrement is a conditional
  UPDATE ... WHERE quantity >= :qty, so two checkouts racing for the last
  unit cannot both succeed. The loser gets InsufficientStock and its whole
  unit of work is rolled back.
- decrement/increment never commit; the caller owns the DB transaction.
- Every quantity change yields a StockChange for the activity log. The log is
  written after commit by activity_service and can never abort a sale.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import update

from ..extensions import db
from ..models import Product, Stock
from .errors import InsufficientStock, ProductUnavailable
from .concurrency import run_with_retry


@dataclass(frozen=True)
class StockChange:
    product_id: int
    previous_quantity: int
    new_quantity: int
    note: str
    user_id: int | None = None
    user_name: str | None = None

    @property
    def difference(self) -> int:
        return self.new_quantity - self.previous_quantity


def get_available(product_ids) -> dict[int, int]:
    """On-hand quantity for each product id, in one read. Missing rows count as 0."""
    ids = list(product_ids)
    if not ids:
        return {}
    rows = db.session.query(Stock.product_id, Stock.quantity).filter(Stock.product_id.in_(ids)).all()
    available = {product_id: 0 for product_id in ids}
    for product_id, quantity in rows:
        available[product_id] = int(quantity)
    return available


def _expire_cached_stock(product_id: int) -> None:
    # Bulk UPDATEs bypass the identity map; drop any loaded copy of the row.
    for obj in list(db.session.identity_map.values()):
        if isinstance(obj, Stock) and obj.product_id == product_id:
            db.session.expire(obj)


def _current_quantity(product_id: int) -> int:
    qty = db.session.query(Stock.quantity).filter_by(product_id=product_id).scalar()
    return int(qty or 0)


def decrement(
    product_id: int,
    quantity: int,
    *,
    note: str,
    user_id: int | None = None,
    user_name: str | None = None,
    product_name: str | None = None,
) -> StockChange:
    """
    Remove quantity from stock, failing instead of going negative.

    Does not commit.
    """
    stmt = (
        update(Stock)
        .where(Stock.product_id == product_id, Stock.quantity >= quantity)
        .values(quantity=Stock.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    _expire_cached_stock(product_id)
    if not result.rowcount:
        available = _current_quantity(product_id)
        label = product_name or f"#{product_id}"
        raise InsufficientStock(
            f"Product {label} does not have enough stock",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": quantity,
                "available": available,
            },
        )

    new_quantity = _current_quantity(product_id)
    return StockChange(
        product_id=product_id,
        previous_quantity=new_quantity + quantity,
        new_quantity=new_quantity,
        note=note,
        user_id=user_id,
        user_name=user_name,
    )


def increment(
    product_id: int,
    quantity: int,
    *,
    note: str,
    user_id: int | None = None,
    user_name: str | None = None,
) -> StockChange:
    """
    Return quantity to stock (cancellations). No upper bound.

    Does not commit.
    """
    stmt = (
        update(Stock)
        .where(Stock.product_id == product_id)
        .values(quantity=Stock.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    _expire_cached_stock(product_id)
    if not result.rowcount:
        db.session.add(Stock(product_id=product_id, quantity=quantity))
        db.session.flush()

    new_quantity = _current_quantity(product_id)
    return StockChange(
        product_id=product_id,
        previous_quantity=new_quantity - quantity,
        new_quantity=new_quantity,
        note=note,
        user_id=user_id,
        user_name=user_name,
    )


def adjust_stock(
    product_id: int,
    new_quantity: int,
    *,
    user_id: int | None = None,
    user_name: str | None = None,
    note: str = "Manual stock adjustment",
) -> StockChange:
    """
    Set the on-hand quantity of a product (receiving, stock counts).

    Commits and records the change in the product activity log.
    """
    from .activity_service import record_stock_changes

    if new_quantity < 0:
        raise ValueError("quantity cannot be negative")

    def _op() -> StockChange:
        product = db.session.query(Product).filter_by(id=product_id).first()
        if product is None:
            raise ProductUnavailable(f"Product {product_id} not found", details={"product_id": product_id})

        stock = db.session.query(Stock).filter_by(product_id=product_id).first()
        if stock is None:
            stock = Stock(product_id=product_id, quantity=0)
            db.session.add(stock)
            db.session.flush()

        previous = stock.quantity
        stock.quantity = new_quantity
        db.session.commit()
        return StockChange(
            product_id=product_id,
            previous_quantity=previous,
            new_quantity=new_quantity,
            note=note,
            user_id=user_id,
            user_name=user_name,
        )

    change = run_with_retry(_op)
    record_stock_changes([change])
    return change
