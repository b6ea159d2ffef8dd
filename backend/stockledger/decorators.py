# Overview: Request decorators for API routes (body presence, current actor).

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import ValidationFailed
from .validation import parse_id


def load_current_actor() -> None:
    """
    before_request hook: expose the upstream-authenticated user id as
    g.actor_id (None when the header is absent or malformed).

    Session handling lives outside this service; the header is trusted as
    an opaque actor reference.
    """
    raw = request.headers.get(current_app.config["ACTOR_HEADER"])
    try:
        g.actor_id = parse_id(raw, "actor") if raw else None
    except ValidationFailed:
        g.actor_id = None


def require_actor(f):
    """Reject the request with 401 when no current actor is known."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, "actor_id", None) is None:
            return jsonify({"error": "You must be logged in to perform this action"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_body(f):
    """
    Reject an empty request body with ValidationFailed("missing body")
    before any other processing; the parsed JSON object is kept on
    g.payload for the route.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.get_data(cache=True):
            err = ValidationFailed("missing body")
            return jsonify(err.to_dict()), err.status_code

        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            err = ValidationFailed("Invalid JSON payload")
            return jsonify(err.to_dict()), err.status_code

        g.payload = payload
        return f(*args, **kwargs)

    return decorated_function
