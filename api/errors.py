import logging

from flask import jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from utils.errors import AppError, InternalError, ValidationFailed

logger = logging.getLogger(__name__)


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def app_error_response(err: AppError):
    return error_response(err.kind, err.message, err.status, details=err.details)


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        return app_error_response(err)

    # Marshmallow validation errors carry field-level messages
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        messages = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        return app_error_response(ValidationFailed(messages))

    # Werkzeug HTTPExceptions (unknown route, bad method, malformed JSON) keep their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        error = err.name.upper().replace(" ", "_")
        message = "Not found" if code == 404 else err.description
        return error_response(error, message, code)

    # 500 Internal Error (catch-all): log server-side, answer generically
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        return app_error_response(InternalError())
