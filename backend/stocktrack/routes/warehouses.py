# backend/stocktrack/routes/warehouses.py
"""
Warehouse API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import InvalidRequest, StockError
from ..models import Warehouse
from ..services import catalog_service, inventory_service
from ..validation import WAREHOUSE_POLICY, optional_bool, validate_payload
from . import error_response, unexpected_response


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.route("", methods=["POST"])
@require_actor
@require_capability("MANAGE_CATALOG")
def create_warehouse():
    """
    Request body:
    {
        "name": str,
        "location": str,
        "manager_id": int (optional)
    }
    """
    try:
        data = validate_payload(model=Warehouse, payload=request.get_json(silent=True), policy=WAREHOUSE_POLICY, partial=False)
        warehouse = catalog_service.create_warehouse(g.actor, **data)
        return jsonify(warehouse.to_dict()), 201
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create warehouse")


@warehouses_bp.route("", methods=["GET"])
@require_actor
def list_warehouses():
    try:
        include_inactive = optional_bool(request.args.get("include_inactive"), "include_inactive")
        warehouses = catalog_service.list_warehouses(g.actor, include_inactive=include_inactive)
        return jsonify([w.to_dict() for w in warehouses]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list warehouses")


@warehouses_bp.route("/<int:warehouse_id>", methods=["GET"])
@require_actor
def get_warehouse(warehouse_id: int):
    try:
        warehouse = catalog_service.get_warehouse(g.actor, warehouse_id)
        return jsonify(warehouse.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load warehouse")


@warehouses_bp.route("/<int:warehouse_id>", methods=["PUT"])
@require_actor
@require_capability("MANAGE_CATALOG")
def update_warehouse(warehouse_id: int):
    try:
        data = validate_payload(model=Warehouse, payload=request.get_json(silent=True), policy=WAREHOUSE_POLICY, partial=True)
        warehouse = catalog_service.update_warehouse(g.actor, warehouse_id, data)
        return jsonify(warehouse.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to update warehouse")


@warehouses_bp.route("/<int:warehouse_id>/status", methods=["PATCH"])
@require_actor
@require_capability("MANAGE_CATALOG")
def set_warehouse_status(warehouse_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data.get("is_active"), bool):
            raise InvalidRequest("is_active must be a boolean")
        warehouse = catalog_service.set_warehouse_status(g.actor, warehouse_id, data["is_active"])
        return jsonify(warehouse.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to change warehouse status")


@warehouses_bp.route("/<int:warehouse_id>/stock", methods=["GET"])
@require_actor
@require_capability("VIEW_INVENTORY")
def warehouse_stock(warehouse_id: int):
    """Balance rows with item details and stock value."""
    try:
        return jsonify(inventory_service.warehouse_stock(g.actor, warehouse_id)), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load warehouse stock")
