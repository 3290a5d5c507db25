# backend/stocktrack/routes/transfers.py
"""
Inter-warehouse transfer request routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import InvalidRequest, StockError
from ..services import transfer_service
from ..validation import coerce_int, optional_int, parse_line_items
from . import error_response, unexpected_response


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_actor
@require_capability("CREATE_TRANSFER")
def create_transfer():
    """
    Create a PENDING transfer request from the manager's warehouse.

    Request body:
    {
        "from_warehouse_id": int,
        "to_warehouse_id": int,
        "reason": str (optional),
        "items": [{"item_id": int, "quantity": int}, ...]
    }

    Returns:
        201: Request created
        400: Invalid request
        403: Outside the manager's warehouse
        404: Unknown warehouse or item
        409: Insufficient stock / inactive item or warehouse
    """
    try:
        data = request.get_json(silent=True) or {}
        for field in ("from_warehouse_id", "to_warehouse_id"):
            if field not in data:
                raise InvalidRequest(f"Missing required field: {field}", details={"field": field})

        transfer = transfer_service.create_transfer(
            g.actor,
            from_warehouse_id=coerce_int(data["from_warehouse_id"], "from_warehouse_id"),
            to_warehouse_id=coerce_int(data["to_warehouse_id"], "to_warehouse_id"),
            lines=parse_line_items(data.get("items")),
            reason=data.get("reason"),
        )
        return jsonify(transfer.to_dict()), 201
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create transfer request")


@transfers_bp.route("", methods=["GET"])
@require_actor
@require_capability("VIEW_TRANSFERS")
def list_transfers():
    """Query params: status, warehouse_id (optional)."""
    try:
        status = request.args.get("status")
        transfers = transfer_service.list_transfers(
            g.actor,
            status=status.upper() if status else None,
            warehouse_id=optional_int(request.args.get("warehouse_id"), "warehouse_id"),
        )
        return jsonify([t.to_dict() for t in transfers]), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list transfer requests")


@transfers_bp.route("/stats", methods=["GET"])
@require_actor
@require_capability("VIEW_TRANSFERS")
def transfer_stats():
    try:
        return jsonify(transfer_service.transfer_stats(g.actor)), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load transfer statistics")


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_actor
@require_capability("VIEW_TRANSFERS")
def get_transfer(transfer_id: int):
    try:
        transfer = transfer_service.get_transfer(g.actor, transfer_id)
        return jsonify(transfer.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load transfer request")


@transfers_bp.route("/<int:transfer_id>/approve", methods=["POST"])
@require_actor
@require_capability("APPROVE_TRANSFER")
def approve_transfer(transfer_id: int):
    """
    Approve and execute a PENDING request.

    Returns:
        200: Request completed
        404: Request not found
        409: Not PENDING, or a line is short at the source
    """
    try:
        transfer = transfer_service.approve_transfer(g.actor, transfer_id)
        return jsonify(transfer.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to approve transfer request")


@transfers_bp.route("/<int:transfer_id>/reject", methods=["POST"])
@require_actor
@require_capability("APPROVE_TRANSFER")
def reject_transfer(transfer_id: int):
    """
    Request body (optional):
    {
        "reason": str
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        transfer = transfer_service.reject_transfer(g.actor, transfer_id, reason=data.get("reason"))
        return jsonify(transfer.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to reject transfer request")


@transfers_bp.route("/<int:transfer_id>/cancel", methods=["POST"])
@require_actor
@require_capability("CANCEL_TRANSFER")
def cancel_transfer(transfer_id: int):
    try:
        transfer = transfer_service.cancel_transfer(g.actor, transfer_id)
        return jsonify(transfer.to_dict()), 200
    except StockError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to cancel transfer request")
