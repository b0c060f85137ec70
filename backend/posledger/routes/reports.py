# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_summary_route():
    """
    Sales summary for [start, end). Defaults to the last 7 days.

    Query params: start, end (ISO-8601), top (best sellers, default 5)
    """
    try:
        top = request.args.get("top", 5, type=int)
        if top is None or top < 1:
            return jsonify({"error": "top must be a positive integer"}), 400

        summary = reporting_service.sales_summary(
            start=request.args.get("start"),
            end=request.args.get("end"),
            top=top,
        )
        return jsonify({"success": True, "data": summary}), 200

    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500
