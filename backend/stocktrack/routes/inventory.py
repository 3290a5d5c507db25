# backend/stocktrack/routes/inventory.py
"""
Stock mutation and ledger read routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import InvalidRequest, StockError
from ..services import inventory_service, ledger_service
from ..validation import coerce_int, optional_int
from . import error_response, unexpected_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _required_int(data: dict, field: str) -> int:
    if field not in data:
        raise InvalidRequest(f"Missing required field: {field}", details={"field": field})
    return coerce_int(data[field], field)


@inventory_bp.route("/assign", methods=["POST"])
@require_actor
@require_capability("ASSIGN_STOCK")
def assign_stock():
    """
    Add stock of an item to a warehouse (ADD movement).

    Request body:
    {
        "warehouse_id": int,
        "item_id": int,
        "quantity": int (> 0)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = inventory_service.assign_stock(
            g.actor,
            warehouse_id=_required_int(data, "warehouse_id"),
            item_id=_required_int(data, "item_id"),
            quantity=_required_int(data, "quantity"),
        )
        return jsonify(result), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to assign stock")


@inventory_bp.route("/adjust", methods=["POST"])
@require_actor
@require_capability("ADJUST_STOCK")
def adjust_stock():
    """
    Apply a signed correction (ADJUSTMENT movement).

    Request body:
    {
        "warehouse_id": int,
        "item_id": int,
        "quantity": int (non-zero, signed),
        "remarks": str (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = inventory_service.adjust_stock(
            g.actor,
            warehouse_id=_required_int(data, "warehouse_id"),
            item_id=_required_int(data, "item_id"),
            quantity_delta=_required_int(data, "quantity"),
            remarks=data.get("remarks"),
        )
        return jsonify(result), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to adjust stock")


@inventory_bp.route("/balance", methods=["GET"])
@require_actor
@require_capability("VIEW_INVENTORY")
def get_balance():
    """Query params: warehouse_id, item_id (both required)."""
    try:
        warehouse_id = _required_int(request.args, "warehouse_id")
        item_id = _required_int(request.args, "item_id")
        quantity = ledger_service.get_balance(warehouse_id, item_id)
        return jsonify({"warehouse_id": warehouse_id, "item_id": item_id, "quantity": quantity}), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load balance")


@inventory_bp.route("/movements", methods=["GET"])
@require_actor
@require_capability("VIEW_INVENTORY")
def list_movements():
    """Query params: warehouse_id, item_id, action, limit (all optional)."""
    try:
        action = request.args.get("action")
        entries = ledger_service.list_movements(
            warehouse_id=optional_int(request.args.get("warehouse_id"), "warehouse_id"),
            item_id=optional_int(request.args.get("item_id"), "item_id"),
            action=action.upper() if action else None,
            limit=optional_int(request.args.get("limit"), "limit"),
        )
        return jsonify([e.to_dict() for e in entries]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list movements")


@inventory_bp.route("/low-stock", methods=["GET"])
@require_actor
@require_capability("VIEW_INVENTORY")
def low_stock():
    try:
        return jsonify(inventory_service.low_stock_items(g.actor)), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load low stock alerts")
