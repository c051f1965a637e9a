"""
api.errors - JSON error handlers for the API blueprint.

Every error body is {"error": message, "code": stable code}, the same
codes an ImportReport uses.
"""

from flask import jsonify

from api import api_bp
from import_engine.errors import ConfigurationError


def _error(message: str, code: str, status: int):
    return jsonify({"error": message, "code": code}), status


@api_bp.errorhandler(ConfigurationError)
def api_bad_spec(exc):
    return _error(str(exc), exc.code, 400)


@api_bp.errorhandler(404)
def api_not_found(_e):
    return _error("not found", "not_found", 404)


@api_bp.errorhandler(400)
def api_bad_request(_e):
    return _error("bad request", "bad_request", 400)


@api_bp.errorhandler(413)
def api_too_large(_e):
    return _error("upload too large", "too_large", 413)


@api_bp.errorhandler(500)
def api_server_error(_e):
    return _error("internal server error", "internal", 500)
