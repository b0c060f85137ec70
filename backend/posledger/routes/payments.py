# Overview: Flask API routes for gateway payments; parses input and returns JSON responses.

# backend/posledger/routes/payments.py
"""
Payment API routes

- create: open a hosted Midtrans Snap session for a PENDING transaction
- webhook: gateway push notifications (no user auth, signature-gated)
- status: manual poll, reconciled exactly like a notification
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import payment_service
from ..services.errors import InvalidWebhookSignature, TransactionError
from ..decorators import require_auth, require_permission


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payment")


@payments_bp.post("/create")
@require_auth
@require_permission("CREATE_TRANSACTION")
def create_payment_route():
    try:
        data = request.get_json(silent=True) or {}
        transaction_id = data.get("transactionId")
        payment_method = data.get("paymentMethod")

        if not transaction_id or not payment_method:
            return jsonify({"error": "Missing required fields"}), 400

        session = payment_service.open_gateway_session(
            int(transaction_id),
            payment_method,
            customer_details=data.get("customerDetails"),
        )
        return jsonify({
            "success": True,
            "data": {"token": session.token, "redirectUrl": session.redirect_url},
        }), 200

    except TransactionError as e:
        if e.status_code >= 500:
            current_app.logger.error("Gateway session failed: %s %s", e, e.details)
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except (TypeError, ValueError):
        return jsonify({"error": "transactionId must be an integer"}), 400
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/webhook")
def webhook_route():
    """
    Midtrans notification endpoint.

    Always acknowledges with 200 so the gateway does not retry-storm; the
    only rejection is a bad signature, which changes nothing.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    order_id = payload.get("order_id")
    current_app.logger.info(
        "Payment notification for %s: %s", order_id, payload.get("transaction_status")
    )

    try:
        tx = payment_service.handle_notification(payload)
        if tx is None:
            current_app.logger.warning("Payment notification for unknown order %s", order_id)
        else:
            current_app.logger.info(
                "Transaction %s is %s/%s", tx.invoice_no, tx.status, tx.payment_status
            )
    except InvalidWebhookSignature:
        current_app.logger.warning("Invalid signature for payment notification %s", order_id)
        return jsonify({"error": "Invalid signature"}), 403
    except Exception:
        current_app.logger.exception("Failed to process payment notification %s", order_id)

    return jsonify({"success": True}), 200


@payments_bp.get("/status/<order_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def payment_status_route(order_id: str):
    try:
        tx, status, payment_status = payment_service.poll_status(order_id)
        return jsonify({
            "success": True,
            "data": {
                "transactionStatus": status.get("transaction_status"),
                "fraudStatus": status.get("fraud_status"),
                "paymentStatus": payment_status,
                "transaction": tx.to_summary() if tx else None,
            },
        }), 200

    except TransactionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check payment status for %s", order_id)
        return jsonify({"error": "Internal server error"}), 500
