"""
Error handling for the HubPress API.

Handlers raise ApiError; the handlers registered here turn it (and anything
unexpected) into the JSON error body the frontend expects:

    {"status": "Error", "error_message": "...", "details": ...}
"""

import logging
import traceback
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An operational error with an HTTP status code"""

    def __init__(self, status_code, message, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details

    def to_dict(self):
        body = {
            'status': 'Error',
            'error_message': self.message,
        }
        if self.details:
            body['details'] = self.details
        return body


class StorageError(Exception):
    """Raised when the object store rejects an operation"""


class AnalyticsError(Exception):
    """Raised when the analytics provider can't be queried"""


def handle_api_error(error):
    if error.status_code >= 500:
        logger.error(f"{request.method} {request.path} failed: {error.message}")
    return jsonify(error.to_dict()), error.status_code


def handle_http_exception(error):
    if error.code == 404:
        api_error = ApiError(404, f"Oooops!! Can't find {request.path} on this server!")
    else:
        api_error = ApiError(error.code or 500, error.description or error.name)
    return handle_api_error(api_error)


def handle_unexpected_error(error):
    logger.error(
        f"Unhandled exception in {request.method} {request.path}: {error}\n{traceback.format_exc()}"
    )
    return jsonify(ApiError(500, 'Internal server error.').to_dict()), 500


def register_error_handlers(app):
    """Register the JSON error handlers on the Flask app"""
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
    logger.debug("Error handlers registered successfully")
