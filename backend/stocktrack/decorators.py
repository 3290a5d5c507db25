# Overview: Request decorators resolving the calling actor for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .permissions import Actor, has_capability
from .services import catalog_service


def require_actor(f):
    """
    Resolve the caller from the gateway-supplied actor header.

    Sets:
    - g.current_user: the active User row
    - g.actor: the Actor passed to service calls

    Returns 401 when the header is missing, not an id, or names an unknown or
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("ACTOR_HEADER", "X-Actor-Id")
        raw = request.headers.get(header, "").strip()
        if not (raw.isascii() and raw.isdigit()):
            return jsonify({"error": "Authentication required"}), 401

        user = catalog_service.get_active_user(int(raw))
        if user is None:
            return jsonify({"error": "Unknown or inactive actor"}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)
        return f(*args, **kwargs)

    return decorated_function


def require_capability(code: str):
    """
    Reject early when the actor's role lacks a capability.

    Services check again; this keeps obviously forbidden requests away from
    payload parsing.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return jsonify({"error": "Authentication required"}), 401
            if not has_capability(actor.role, code):
                return jsonify({
                    "error": "Permission denied",
                    "code": "Forbidden",
                    "details": {"required_capability": code},
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
