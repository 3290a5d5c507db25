# backend/stocktrack/routes/sales.py
"""
Sale creation, lookup and cancellation routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import InvalidRequest, StockError
from ..services import sales_service
from ..validation import coerce_int, optional_datetime, optional_end_datetime, optional_int, parse_line_items
from . import error_response, unexpected_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

CUSTOMER_FIELDS = ("customer_name", "customer_phone", "customer_email", "customer_address")


@sales_bp.route("", methods=["POST"])
@require_actor
@require_capability("CREATE_SALE")
def create_sale():
    """
    Record a completed sale.

    Request body:
    {
        "warehouse_id": int,
        "items": [{"item_id": int, "quantity": int, "unit_price_cents": int (optional)}],
        "discount_type": "FIXED" | "PERCENTAGE" (optional, default FIXED),
        "discount_value": int (cents for FIXED, basis points for PERCENTAGE),
        "tax_cents": int (optional),
        "payment_method": "CASH" | "CARD" | "UPI" | "NET_BANKING" | "OTHER",
        "customer_name" / "customer_phone" / "customer_email" / "customer_address": str (optional),
        "remarks": str (optional)
    }

    Totals are always computed server-side.
    """
    try:
        data = request.get_json(silent=True) or {}
        if "warehouse_id" not in data:
            raise InvalidRequest("Missing required field: warehouse_id", details={"field": "warehouse_id"})

        sale = sales_service.create_sale(
            g.actor,
            warehouse_id=coerce_int(data["warehouse_id"], "warehouse_id"),
            lines=parse_line_items(data.get("items"), allow_price=True),
            discount_type=data.get("discount_type") or "FIXED",
            discount_value=coerce_int(data.get("discount_value", 0), "discount_value"),
            tax_cents=coerce_int(data.get("tax_cents", 0), "tax_cents"),
            payment_method=data.get("payment_method") or "CASH",
            remarks=data.get("remarks"),
            **{field: data.get(field) for field in CUSTOMER_FIELDS},
        )
        return jsonify(sale.to_dict()), 201
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create sale")


@sales_bp.route("", methods=["GET"])
@require_actor
@require_capability("VIEW_SALES")
def list_sales():
    """Query params: warehouse_id, status, start_date, end_date (ISO-8601, inclusive)."""
    try:
        status = request.args.get("status")
        sales = sales_service.list_sales(
            g.actor,
            warehouse_id=optional_int(request.args.get("warehouse_id"), "warehouse_id"),
            status=status.upper() if status else None,
            start=optional_datetime(request.args.get("start_date"), "start_date"),
            end=optional_end_datetime(request.args.get("end_date"), "end_date"),
        )
        return jsonify([s.to_dict(include_lines=False) for s in sales]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list sales")


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@require_actor
@require_capability("VIEW_SALES")
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(g.actor, sale_id)
        return jsonify(sale.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load sale")


@sales_bp.route("/<int:sale_id>/cancel", methods=["POST"])
@require_actor
@require_capability("CANCEL_SALE")
def cancel_sale(sale_id: int):
    """
    Request body (optional):
    {
        "reason": str
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.cancel_sale(g.actor, sale_id, reason=data.get("reason"))
        return jsonify(sale.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to cancel sale")
