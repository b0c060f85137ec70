# Overview: Service-layer operations for checkout; turns a cart into a persisted transaction.

"""
Checkout (transaction ledger)

create_transaction validates the cart, prices it, allocates an invoice
number and writes Transaction + TransactionItems (+ a settlement Payment for
cash) while decrementing stock, all in one DB transaction:

- CASH: COMPLETED / PAID immediately.
- Gateway methods: PENDING / PENDING. Stock is taken at creation time, not at
  payment confirmation; payment_service gives it back if the gateway reports
  deny/cancel/expire.

Validation failures (InvalidCart, ProductUnavailable, InsufficientStock) are
raised before any write. If a concurrent checkout wins the last unit between
the availability read and the decrement, the conditional decrement raises
InsufficientStock and the whole unit is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Transaction, TransactionItem, Payment, User
from ..models.transactions import (
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_CANCELED,
    PAYMENT_PENDING,
    PAYMENT_PAID,
)
from posledger.time_utils import parse_iso_datetime, utcnow
from .activity_service import record_stock_changes
from .concurrency import run_with_retry
from .discount_service import DiscountSpec, DiscountResult, apply_discount
from .errors import (
    InvalidCart,
    InvalidFilter,
    InsufficientStock,
    InvoiceCollision,
    ProductUnavailable,
    TransactionError,
)
from .inventory_service import decrement, get_available
from .invoice_service import next_invoice_number
from .payment_methods import PaymentMethod


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    price: int | None = None
    discount: DiscountSpec = DiscountSpec()


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    product_name: str
    unit_price: int
    discount: DiscountResult

    @property
    def subtotal(self) -> int:
        return self.discount.final_amount

    @property
    def discount_price(self) -> int:
        return self.subtotal // self.line.quantity


@dataclass(frozen=True)
class PricedCart:
    lines: list[PricedLine]
    subtotal: int
    discount: DiscountResult

    @property
    def total(self) -> int:
        return self.discount.final_amount


def _require_int(value, field: str, index: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise InvalidCart(
            f"Invalid item: {field} must be an integer",
            details={"index": index, "field": field, "value": value},
        )
    return value


def parse_cart(items) -> list[CartLine]:
    """Validate raw request items into CartLines. Product ids must be distinct."""
    if not items or not isinstance(items, list):
        raise InvalidCart("Invalid items", details={"reason": "Items must be a non-empty array"})

    lines: list[CartLine] = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise InvalidCart("Invalid item", details={"index": index})

        product_id = raw.get("productId", raw.get("product_id"))
        quantity = raw.get("quantity")
        if product_id is None or quantity is None:
            raise InvalidCart(
                "Invalid item",
                details={"index": index, "reason": "Each item must have productId and quantity"},
            )

        product_id = _require_int(product_id, "productId", index)
        quantity = _require_int(quantity, "quantity", index)
        if quantity <= 0:
            raise InvalidCart(
                "Invalid quantity",
                details={"index": index, "reason": "Quantity must be greater than 0"},
            )
        if product_id in seen:
            raise InvalidCart(
                "Duplicate product in cart",
                details={"index": index, "product_id": product_id},
            )
        seen.add(product_id)

        price = raw.get("price")
        if price is not None:
            price = _require_int(price, "price", index)

        lines.append(CartLine(
            product_id=product_id,
            quantity=quantity,
            price=price,
            discount=DiscountSpec.from_payload(raw.get("discount")),
        ))
    return lines


def price_cart(lines: list[CartLine], products: dict[int, Product], order_discount: DiscountSpec) -> PricedCart:
    """Line discounts first, then the transaction discount on their sum."""
    priced: list[PricedLine] = []
    for line in lines:
        product = products[line.product_id]
        if line.price is not None and line.price != product.price:
            raise InvalidCart(
                f"Price changed for product {product.name}",
                details={
                    "product_id": product.id,
                    "submitted_price": line.price,
                    "current_price": product.price,
                },
            )
        priced.append(PricedLine(
            line=line,
            product_name=product.name,
            unit_price=product.price,
            discount=apply_discount(product.price * line.quantity, line.discount),
        ))

    subtotal = sum(p.subtotal for p in priced)
    return PricedCart(lines=priced, subtotal=subtotal, discount=apply_discount(subtotal, order_discount))


def _load_products(lines: list[CartLine]) -> dict[int, Product]:
    ids = [line.product_id for line in lines]
    products = db.session.query(Product).filter(Product.id.in_(ids), Product.is_active.is_(True)).all()
    by_id = {p.id: p for p in products}
    missing = [pid for pid in ids if pid not in by_id]
    if missing:
        raise ProductUnavailable("Some products are not available", details={"product_ids": missing})
    return by_id


def _check_stock(lines: list[CartLine], products: dict[int, Product]) -> None:
    available = get_available(products.keys())
    for line in lines:
        on_hand = available.get(line.product_id, 0)
        if on_hand < line.quantity:
            product = products[line.product_id]
            raise InsufficientStock(
                f"Product {product.name} does not have enough stock",
                details={
                    "product_id": product.id,
                    "product_name": product.name,
                    "requested_quantity": line.quantity,
                    "available": on_hand,
                },
            )


def create_transaction(
    items,
    payment_method,
    cashier_id: int,
    *,
    discount: dict | None = None,
    total_amount: int | None = None,
    now: datetime | None = None,
) -> Transaction:
    """
    Create a sale from raw cart items.

    Args:
        items: [{"productId", "quantity", "price"?, "discount"?}, ...]
        payment_method: PaymentMethod or its code
        cashier_id: acting user
        discount: transaction-level {"type": "PERCENTAGE"|"NOMINAL", "value"}
        total_amount: client-computed total; rejected if it disagrees
        now: business time (defaults to utcnow)

    Raises:
        InvalidCart, ProductUnavailable, InsufficientStock, InvoiceCollision
    """
    method = PaymentMethod.parse(payment_method)
    lines = parse_cart(items)
    order_discount = DiscountSpec.from_payload(discount)
    now = now or utcnow()

    def _op():
        try:
            cashier = db.session.query(User).filter_by(id=cashier_id).first()
            cashier_name = cashier.name if cashier else None

            products = _load_products(lines)
            _check_stock(lines, products)
            cart = price_cart(lines, products, order_discount)

            if total_amount is not None and total_amount != cart.total:
                raise InvalidCart(
                    "Total amount does not match cart",
                    details={"submitted_total": total_amount, "computed_total": cart.total},
                )

            invoice_no = next_invoice_number(now)
            tx = Transaction(
                invoice_no=invoice_no,
                subtotal_amount=cart.subtotal,
                total_amount=cart.total,
                payment_type=method.value,
                cashier_id=cashier_id,
                created_at=now,
                discount_type=None if cart.discount.spec.is_none else cart.discount.spec.kind,
                discount_value=None if cart.discount.spec.is_none else cart.discount.spec.value,
                discount_amount=cart.discount.discount_amount,
            )
            if method.is_gateway:
                tx.status = STATUS_PENDING
                tx.payment_status = PAYMENT_PENDING
            else:
                tx.status = STATUS_COMPLETED
                tx.payment_status = PAYMENT_PAID
                tx.paid_at = now

            db.session.add(tx)
            try:
                db.session.flush()
            except IntegrityError as exc:
                raise InvoiceCollision(
                    "Invoice number already taken, retry",
                    details={"invoice_no": invoice_no},
                ) from exc

            if not method.is_gateway:
                db.session.add(Payment(
                    transaction_id=tx.id,
                    amount=cart.total,
                    payment_type="CASH",
                    payment_method=method.channel,
                    payment_status="settlement",
                    transaction_time=now,
                ))

            changes = []
            for priced in cart.lines:
                line = priced.line
                changes.append(decrement(
                    line.product_id,
                    line.quantity,
                    note=f"Sale {invoice_no}",
                    user_id=cashier_id,
                    user_name=cashier_name,
                    product_name=priced.product_name,
                ))
                db.session.add(TransactionItem(
                    transaction_id=tx.id,
                    product_id=line.product_id,
                    product_name=priced.product_name,
                    price=priced.unit_price,
                    quantity=line.quantity,
                    discount_type=None if line.discount.is_none else line.discount.kind,
                    discount_value=None if line.discount.is_none else line.discount.value,
                    discount_price=priced.discount_price,
                    discount_amount=priced.discount.discount_amount,
                    subtotal=priced.subtotal,
                ))

            db.session.commit()
            return tx, changes
        except TransactionError:
            db.session.rollback()
            raise

    tx, changes = run_with_retry(_op, retry_on=(InvoiceCollision,))
    record_stock_changes(changes)
    return tx


def get_transaction(transaction_id: int) -> Transaction | None:
    return db.session.query(Transaction).filter_by(id=transaction_id).first()


def get_transaction_by_invoice(invoice_no: str) -> Transaction | None:
    return db.session.query(Transaction).filter_by(invoice_no=invoice_no).first()


LIST_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELED)


def list_transactions(
    *,
    search: str | None = None,
    status: str | None = None,
    start: str | None = None,
    end: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Transaction history, newest first.

    Args:
        search: case-insensitive substring of invoice_no
        status: PENDING | COMPLETED | CANCELED
        start, end: ISO-8601 bounds on created_at; a date-only end includes that day
        page: 1-indexed page (default 1)
        per_page: items per page (default 20, max 100)

    Raises:
        InvalidFilter
    """
    query = db.session.query(Transaction)

    if search and search.strip():
        query = query.filter(Transaction.invoice_no.ilike(f"%{search.strip()}%"))

    if status:
        status = status.strip().upper()
        if status not in LIST_STATUSES:
            raise InvalidFilter("Unknown status", details={"status": status, "allowed": list(LIST_STATUSES)})
        query = query.filter(Transaction.status == status)

    try:
        start_dt = parse_iso_datetime(start)
        end_dt = parse_iso_datetime(end)
    except ValueError:
        raise InvalidFilter("start and end must be ISO-8601 dates")
    if end_dt is not None and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1)
    if start_dt is not None:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Transaction.created_at < end_dt)

    page = 1 if page is None else page
    per_page = 20 if per_page is None else per_page
    if page < 1 or per_page < 1:
        raise InvalidFilter("page and per_page must be positive")
    per_page = min(per_page, 100)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    items = []
    for tx in rows:
        data = tx.to_dict()
        data["cashierName"] = tx.cashier.name if tx.cashier else None
        data["itemCount"] = sum(item.quantity for item in tx.items)
        data["cancelReason"] = tx.cancel_logs[0].reason if tx.cancel_logs else None
        items.append(data)

    return {
        "items": items,
        "count": len(items),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
