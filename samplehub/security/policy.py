from functools import wraps
from flask import abort, jsonify, request
from flask_login import current_user
from samplehub.models import Customer

def _abort_smart(code: int):
    # If the client asked for JSON, return a JSON-shaped error
    accept = (request.headers.get("Accept") or "").lower()
    if "application/json" in accept or request.is_json or request.path.endswith(".json"):
        return jsonify({"error": {401: "unauthorized", 403: "forbidden", 404: "not_found"}[code], "code": code}), code
    abort(code)

def require_admin(fn):
    @wraps(fn)
    def _wrap(*args, **kwargs):
        if not current_user.is_authenticated:
            return _abort_smart(401)
        if not getattr(current_user, "is_admin", False):
            return _abort_smart(403)
        return fn(*args, **kwargs)
    return _wrap

def current_customer() -> Customer | None:
    """Customer row linked to the logged-in user, if any."""
    if not getattr(current_user, "is_authenticated", False):
        return None
    return Customer.query.filter_by(user_id=current_user.id).one_or_none()

def require_customer(fn):
    """Resolve the caller's Customer and pass it to the view as `customer`."""
    @wraps(fn)
    def _wrap(*args, **kwargs):
        if not current_user.is_authenticated:
            return _abort_smart(401)
        customer = current_customer()
        if customer is None:
            return jsonify({"error": "Customer not found", "code": "not_found"}), 404
        return fn(*args, customer=customer, **kwargs)
    return _wrap
