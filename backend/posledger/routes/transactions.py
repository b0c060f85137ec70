# Overview: Flask API routes for checkout and cancellation; parses input and returns JSON responses.

# backend/posledger/routes/transactions.py
"""Transaction API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import transaction_service, lifecycle_service
from ..services.errors import TransactionError, TransactionNotFound
from ..services.payment_methods import PaymentMethod
from ..services.payment_service import DEFAULT_CUSTOMER_NAME, DEFAULT_CUSTOMER_EMAIL
from ..decorators import require_auth, require_permission


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _error(e: TransactionError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _create(default_method: PaymentMethod | None):
    data = request.get_json(silent=True) or {}
    method = PaymentMethod.parse(data.get("paymentMethod"), default=default_method)
    return transaction_service.create_transaction(
        data.get("items"),
        method,
        g.current_user.id,
        discount=data.get("discount"),
        total_amount=data.get("totalAmount"),
    )


@transactions_bp.post("")
@require_auth
@require_permission("CREATE_TRANSACTION")
def create_transaction_route():
    """
    Ring up a cash sale; it completes immediately.

    Requires: CREATE_TRANSACTION permission
    """
    try:
        data = request.get_json(silent=True) or {}
        method = PaymentMethod.parse(data.get("paymentMethod"), default=PaymentMethod.CASH)
        if method.is_gateway:
            return jsonify({"error": "Gateway payments must use /api/transactions/pending"}), 400

        tx = _create(PaymentMethod.CASH)
        return jsonify({"success": True, "data": tx.to_summary()}), 201

    except TransactionError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/pending")
@require_auth
@require_permission("CREATE_TRANSACTION")
def create_pending_transaction_route():
    """
    Create a PENDING transaction for gateway payment; stock is taken now.

    Requires: CREATE_TRANSACTION permission
    """
    try:
        data = request.get_json(silent=True) or {}
        method = PaymentMethod.parse(data.get("paymentMethod"), default=PaymentMethod.MIDTRANS_QRIS)
        if not method.is_gateway:
            return jsonify({"error": "Pending transactions require a gateway payment method"}), 400

        tx = _create(PaymentMethod.MIDTRANS_QRIS)

        cashier = g.current_user
        body = tx.to_summary()
        body["customerDetails"] = {
            "name": cashier.name or DEFAULT_CUSTOMER_NAME,
            "email": cashier.email or DEFAULT_CUSTOMER_EMAIL,
        }
        return jsonify({"success": True, "data": body}), 201

    except TransactionError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create pending transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def list_transactions_route():
    """
    Transaction history, newest first.

    Query params:
    - search: invoice number fragment
    - status: PENDING | COMPLETED | CANCELED
    - start, end: ISO-8601 bounds on created_at
    - page: int (default 1)
    - per_page: int (default 20, max 100)
    """
    try:
        result = transaction_service.list_transactions(
            search=request.args.get("search"),
            status=request.args.get("status"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify({"success": True, "data": result}), 200

    except TransactionError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def get_transaction_route(transaction_id: int):
    """Receipt view: items, payment and cancel history."""
    tx = transaction_service.get_transaction(transaction_id)
    if not tx:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"success": True, "data": tx.to_dict(include_items=True)}), 200


@transactions_bp.post("/<int:transaction_id>/cancel")
@require_auth
@require_permission("CANCEL_TRANSACTION")
def cancel_transaction_route(transaction_id: int):
    """
    Cancel within the 24-hour window and restore stock.

    Requires: CANCEL_TRANSACTION permission
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = lifecycle_service.cancel_transaction(transaction_id, data.get("reason"), g.current_user.id)
        current_app.logger.info("Transaction %s canceled by user %s", tx.invoice_no, g.current_user.id)
        return jsonify({
            "success": True,
            "message": "Transaction canceled successfully",
            "data": tx.to_dict(),
        }), 200

    except TransactionNotFound as e:
        return jsonify({"error": str(e)}), 404
    except TransactionError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel transaction")
        return jsonify({"error": "Internal server error"}), 500
