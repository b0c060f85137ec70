"""
Cancellation tests.

Verifies:
- Cancel restores every item's stock exactly once
- One cancel log per cancellation, attributed to the actor
- 24-hour window, inclusive at the boundary
- Error precedence: reason, then existence, then state, then window
"""

from datetime import datetime, timedelta

import pytest

from posledger.models import ProductActivityLog, TransactionCancelLog
from posledger.services.errors import (
    AlreadyCanceled,
    CancelWindowExpired,
    ReasonRequired,
    TransactionNotFound,
)
from posledger.services.lifecycle_service import cancel_transaction, is_within_cancel_window
from posledger.services.transaction_service import create_transaction


SALE_TIME = datetime(2025, 6, 1, 10, 0, 0)


@pytest.fixture
def cash_sale(cashier, coffee, tea):
    return create_transaction(
        [
            {"productId": coffee.id, "quantity": 2},
            {"productId": tea.id, "quantity": 1},
        ],
        "CASH",
        cashier.id,
        now=SALE_TIME,
    )


class TestCancel:

    def test_restores_stock(self, db_session, cash_sale, manager, coffee, tea, stock_of):
        assert stock_of(coffee) == 8
        assert stock_of(tea) == 4

        tx = cancel_transaction(cash_sale.id, "Customer changed mind", manager.id, now=SALE_TIME + timedelta(hours=1))

        assert tx.status == "CANCELED"
        assert tx.canceled_at == SALE_TIME + timedelta(hours=1)
        assert tx.canceled_by_id == manager.id
        assert stock_of(coffee) == 10
        assert stock_of(tea) == 5

    def test_writes_one_cancel_log(self, db_session, cash_sale, manager):
        cancel_transaction(cash_sale.id, "  Wrong item  ", manager.id, now=SALE_TIME)

        logs = db_session.query(TransactionCancelLog).filter_by(transaction_id=cash_sale.id).all()
        assert len(logs) == 1
        assert logs[0].reason == "Wrong item"
        assert logs[0].canceled_by_id == manager.id

    def test_records_stock_returned(self, db_session, cash_sale, manager, coffee):
        cancel_transaction(cash_sale.id, "Wrong item", manager.id, now=SALE_TIME)

        added = db_session.query(ProductActivityLog).filter_by(
            product_id=coffee.id, activity_type="STOCK_ADDED"
        ).one()
        assert added.previous_value == 8
        assert added.new_value == 10
        assert added.user_name == "Manajer Toko"

    def test_pending_transaction_can_be_canceled(self, cashier, manager, coffee, stock_of):
        tx = create_transaction([{"productId": coffee.id, "quantity": 3}], "MIDTRANS_QRIS", cashier.id, now=SALE_TIME)
        assert stock_of(coffee) == 7

        cancel_transaction(tx.id, "Customer left", manager.id, now=SALE_TIME)
        assert stock_of(coffee) == 10

    def test_cancel_twice(self, db_session, cash_sale, manager, coffee, stock_of):
        cancel_transaction(cash_sale.id, "First", manager.id, now=SALE_TIME)

        with pytest.raises(AlreadyCanceled):
            cancel_transaction(cash_sale.id, "Second", manager.id, now=SALE_TIME)

        assert stock_of(coffee) == 10
        assert db_session.query(TransactionCancelLog).count() == 1


class TestCancelWindow:

    def test_boundary_is_inclusive(self, cash_sale, manager):
        tx = cancel_transaction(cash_sale.id, "Late", manager.id, now=SALE_TIME + timedelta(hours=24))
        assert tx.status == "CANCELED"

    def test_expired(self, db_session, cash_sale, manager, coffee, stock_of):
        with pytest.raises(CancelWindowExpired):
            cancel_transaction(
                cash_sale.id, "Too late", manager.id, now=SALE_TIME + timedelta(hours=24, seconds=1)
            )

        db_session.expire_all()
        assert cash_sale.status == "COMPLETED"
        assert stock_of(coffee) == 8
        assert db_session.query(TransactionCancelLog).count() == 0

    def test_is_within_cancel_window(self, cash_sale):
        assert is_within_cancel_window(cash_sale, SALE_TIME + timedelta(hours=23))
        assert not is_within_cancel_window(cash_sale, SALE_TIME + timedelta(days=2))


class TestCancelValidation:

    @pytest.mark.parametrize("reason", [None, "", "   ", 42])
    def test_reason_required(self, cash_sale, manager, reason):
        with pytest.raises(ReasonRequired):
            cancel_transaction(cash_sale.id, reason, manager.id, now=SALE_TIME)

    def test_reason_checked_before_lookup(self, manager):
        with pytest.raises(ReasonRequired):
            cancel_transaction(99999, "", manager.id)

    def test_not_found(self, manager):
        with pytest.raises(TransactionNotFound):
            cancel_transaction(99999, "Nope", manager.id)

    def test_already_canceled_checked_before_window(self, cash_sale, manager):
        cancel_transaction(cash_sale.id, "First", manager.id, now=SALE_TIME)
        with pytest.raises(AlreadyCanceled):
            cancel_transaction(cash_sale.id, "Again", manager.id, now=SALE_TIME + timedelta(days=3))
