# Overview: Flask API routes for stock levels and product activity.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service, activity_service
from ..services.errors import TransactionError
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/<int:product_id>/adjust")
@require_auth
@require_permission("MANAGE_INVENTORY")
def adjust_stock_route(product_id: int):
    """Set on-hand quantity. Body: {quantity, note?}"""
    try:
        data = request.get_json(silent=True) or {}
        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            return jsonify({"error": "quantity must be a non-negative integer"}), 400

        change = inventory_service.adjust_stock(
            product_id,
            quantity,
            user_id=g.current_user.id,
            user_name=g.current_user.name,
            note=data.get("note") or "Manual stock adjustment",
        )
        return jsonify({
            "success": True,
            "data": {
                "productId": change.product_id,
                "previousQuantity": change.previous_quantity,
                "newQuantity": change.new_quantity,
            },
        }), 200

    except TransactionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:product_id>/activity")
@require_auth
@require_permission("MANAGE_INVENTORY")
def product_activity_route(product_id: int):
    limit = request.args.get("limit", 50, type=int)
    logs = activity_service.get_product_activity(product_id, limit=limit)
    return jsonify({"success": True, "data": [log.to_dict() for log in logs]}), 200
