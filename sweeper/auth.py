import hmac
from functools import wraps

from flask import current_app, jsonify, request

from sweeper.errors import Unauthorized

API_SECRET_HEADER = "x-api-secret"


def secret_matches(provided, expected) -> bool:
    """Exact, case-sensitive match; an unset secret never matches"""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def api_secret_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        settings = current_app.config["SWEEPER_SETTINGS"]
        if not secret_matches(request.headers.get(API_SECRET_HEADER), settings.api_secret):
            current_app.logger.info(f"Unauthorized {request.method} {request.path}")
            error = Unauthorized()
            return jsonify({"error": error.message}), error.status_code
        return f(*args, **kwargs)

    return decorated_function
