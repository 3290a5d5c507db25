# Overview: Shared JSON error rendering for the API blueprints.

from flask import current_app, jsonify

from ..errors import StockError
from ..extensions import db


def error_response(e: StockError):
    """Render a domain error with its own status code."""
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


def unexpected_response(message: str):
    """Log the active exception and hide its internals from the client."""
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
