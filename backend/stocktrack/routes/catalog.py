# backend/stocktrack/routes/catalog.py
"""
Category and item API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import InvalidRequest, StockError
from ..models import Category, Item
from ..services import catalog_service
from ..validation import (
    CATEGORY_POLICY,
    ITEM_POLICY,
    enforce_rules_item,
    optional_bool,
    optional_int,
    validate_payload,
)
from . import error_response, unexpected_response


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@categories_bp.route("", methods=["POST"])
@require_actor
@require_capability("MANAGE_CATALOG")
def create_category():
    """
    Request body:
    {
        "name": str,
        "description": str (optional)
    }
    """
    try:
        data = validate_payload(model=Category, payload=request.get_json(silent=True), policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(g.actor, **data)
        return jsonify(category.to_dict()), 201
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create category")


@categories_bp.route("", methods=["GET"])
@require_actor
def list_categories():
    try:
        include_inactive = optional_bool(request.args.get("include_inactive"), "include_inactive")
        categories = catalog_service.list_categories(g.actor, include_inactive=include_inactive)
        return jsonify([c.to_dict() for c in categories]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list categories")


@categories_bp.route("/<int:category_id>", methods=["GET"])
@require_actor
def get_category(category_id: int):
    try:
        category = catalog_service.get_category(category_id)
        data = category.to_dict()
        data["item_count"] = len(category.items)
        return jsonify(data), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load category")


@categories_bp.route("/<int:category_id>", methods=["PUT"])
@require_actor
@require_capability("MANAGE_CATALOG")
def update_category(category_id: int):
    try:
        data = validate_payload(model=Category, payload=request.get_json(silent=True), policy=CATEGORY_POLICY, partial=True)
        category = catalog_service.update_category(g.actor, category_id, data)
        return jsonify(category.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to update category")


@categories_bp.route("/<int:category_id>/status", methods=["PATCH"])
@require_actor
@require_capability("MANAGE_CATALOG")
def set_category_status(category_id: int):
    """
    Request body:
    {
        "is_active": bool
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data.get("is_active"), bool):
            raise InvalidRequest("is_active must be a boolean")
        category = catalog_service.set_category_status(g.actor, category_id, data["is_active"])
        return jsonify(category.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to change category status")


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
@require_actor
@require_capability("MANAGE_CATALOG")
def delete_category(category_id: int):
    try:
        catalog_service.delete_category(g.actor, category_id)
        return jsonify({"message": "Category deleted"}), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to delete category")


@items_bp.route("", methods=["POST"])
@require_actor
@require_capability("MANAGE_CATALOG")
def create_item():
    """
    Request body:
    {
        "sku": str,
        "name": str,
        "category_id": int,
        "unit": str,
        "description": str (optional),
        "min_stock": int (optional),
        "purchase_price_cents": int (optional),
        "selling_price_cents": int (optional),
        "currency": str (optional)
    }
    """
    try:
        data = validate_payload(model=Item, payload=request.get_json(silent=True), policy=ITEM_POLICY, partial=False)
        enforce_rules_item(data)
        item = catalog_service.create_item(g.actor, **data)
        return jsonify(item.to_dict()), 201
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create item")


@items_bp.route("", methods=["GET"])
@require_actor
def list_items():
    """
    Query params: category_id, include_inactive, q (name / SKU search).
    """
    try:
        items = catalog_service.list_items(
            g.actor,
            category_id=optional_int(request.args.get("category_id"), "category_id"),
            include_inactive=optional_bool(request.args.get("include_inactive"), "include_inactive"),
            search=request.args.get("q"),
        )
        return jsonify([i.to_dict() for i in items]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list items")


@items_bp.route("/<int:item_id>", methods=["GET"])
@require_actor
def get_item(item_id: int):
    try:
        item = catalog_service.get_item(g.actor, item_id)
        data = item.to_dict()
        data["total_quantity"] = catalog_service.total_item_stock(item.id)
        return jsonify(data), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load item")


@items_bp.route("/<int:item_id>", methods=["PUT"])
@require_actor
@require_capability("MANAGE_CATALOG")
def update_item(item_id: int):
    try:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict) and "sku" in payload:
            raise InvalidRequest("SKU cannot be changed", details={"item_id": item_id})
        data = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=True)
        enforce_rules_item(data)
        item = catalog_service.update_item(g.actor, item_id, data)
        return jsonify(item.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to update item")


@items_bp.route("/<int:item_id>/status", methods=["PATCH"])
@require_actor
@require_capability("MANAGE_CATALOG")
def set_item_status(item_id: int):
    """
    Request body:
    {
        "is_active": bool
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data.get("is_active"), bool):
            raise InvalidRequest("is_active must be a boolean")
        item = catalog_service.set_item_status(g.actor, item_id, data["is_active"])
        return jsonify(item.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to change item status")


@items_bp.route("/<int:item_id>", methods=["DELETE"])
@require_actor
@require_capability("MANAGE_CATALOG")
def delete_item(item_id: int):
    try:
        catalog_service.delete_item(g.actor, item_id)
        return jsonify({"message": "Item deleted"}), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to delete item")
