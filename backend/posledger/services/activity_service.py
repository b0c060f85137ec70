# Overview: Product activity log writer; consumes stock change events after the business commit.

"""
The activity log is a side channel. Services hand their StockChange events to
record_stock_changes only after their own commit succeeded; a failure here is
logged and swallowed so it can never undo or block a sale or cancellation.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import Product, ProductActivityLog
from .inventory_service import StockChange


ACTIVITY_STOCK_ADDED = "STOCK_ADDED"
ACTIVITY_STOCK_REMOVED = "STOCK_REMOVED"


def _describe(change: StockChange, product_name: str) -> str:
    diff = change.difference
    direction = "added to" if diff > 0 else "removed from"
    sign = "+" if diff > 0 else ""
    return (
        f'Stock {direction} "{product_name}": {sign}{diff} '
        f"({change.previous_quantity} -> {change.new_quantity}). {change.note}"
    )


def record_stock_changes(changes: Iterable[StockChange]) -> int:
    """Persist one activity row per non-zero change. Returns rows written."""
    changes = [c for c in changes if c.difference != 0]
    if not changes:
        return 0

    try:
        ids = {c.product_id for c in changes}
        names = dict(db.session.query(Product.id, Product.name).filter(Product.id.in_(ids)).all())

        for change in changes:
            name = names.get(change.product_id, f"#{change.product_id}")
            db.session.add(ProductActivityLog(
                product_id=change.product_id,
                activity_type=ACTIVITY_STOCK_ADDED if change.difference > 0 else ACTIVITY_STOCK_REMOVED,
                description=_describe(change, name),
                changes={
                    "previousQuantity": change.previous_quantity,
                    "newQuantity": change.new_quantity,
                    "difference": change.difference,
                },
                previous_value=change.previous_quantity,
                new_value=change.new_quantity,
                user_id=change.user_id,
                user_name=change.user_name,
            ))
        db.session.commit()
        return len(changes)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record product activity")
        return 0


def get_product_activity(product_id: int, limit: int = 50) -> list[ProductActivityLog]:
    return (
        db.session.query(ProductActivityLog)
        .filter_by(product_id=product_id)
        .order_by(ProductActivityLog.created_at.desc(), ProductActivityLog.id.desc())
        .limit(limit)
        .all()
    )
