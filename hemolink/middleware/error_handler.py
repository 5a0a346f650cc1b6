# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with problem-JSON responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Any, Dict, List, Optional, Tuple
from opentelemetry import trace
import logging

from ..domain.errors import CustomException, ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://api.hemolink.org/problems"

TITLES = {
    "validation-error": "Validation Error",
    "authentication-required": "Authentication Required",
    "insufficient-permissions": "Insufficient Permissions",
    "resource-not-found": "Resource Not Found",
    "resource-conflict": "Resource Conflict",
    "invalid-transition": "Invalid Status Transition",
    "insufficient-stock": "Insufficient Stock",
    "service-unavailable": "Service Unavailable",
}


def build_problem(error_type: str, title: str, status: int, detail: str,
                  instance: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    """Build an RFC 7807 problem document."""
    problem = {
        "type": f"{PROBLEM_BASE_URL}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance
    }
    if errors:
        problem["errors"] = errors
    return problem


class ErrorHandlerMiddleware:
    """Centralized handling of HTTP and unexpected errors."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error)
            return self.handle_client_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_client_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle client errors (4xx status codes)."""
        error_type = error.name.lower().replace(" ", "-")
        detail = str(error.description) if error.description else error.name

        logger.warning(
            f"Client error: {error.name}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "detail": detail,
                "path": request.path,
                "method": request.method,
                "ip_address": request.remote_addr
            }
        )
        return jsonify(build_problem(error_type, error.name, error.code, detail, request.path)), error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle server errors (5xx status codes)."""
        error_type = error.name.lower().replace(" ", "-")
        detail = str(error.description) if error.description else error.name

        logger.error(
            f"Server error: {error.name}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "detail": detail,
                "path": request.path,
                "method": request.method
            },
            exc_info=True
        )

        if self.app.config.get('ENVIRONMENT') == 'production':
            detail = "An internal server error occurred"

        return jsonify(build_problem(error_type, error.name, error.code, detail, request.path)), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """Handle unexpected exceptions not caught by specific handlers."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            return jsonify(build_problem(
                "internal-server-error", "Internal Server Error", 500, detail, request.path
            )), 500


def register_custom_error_handlers(app: Flask):
    """
    Register handlers for application exceptions.

    Args:
        app: Flask application
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            errors = error.validation_errors if isinstance(error, ValidationException) else None
            problem = build_problem(
                error.error_type,
                TITLES.get(error.error_type, "Application Error"),
                error.status_code,
                error.message,
                request.path,
                errors
            )
            return jsonify(problem), error.status_code
