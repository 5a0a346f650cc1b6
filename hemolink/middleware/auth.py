# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

Protected endpoints are wrapped with ``require_jwt``; the authenticated
``UserContext`` is stored on ``flask.g.user_context`` for the handler.
"""

from functools import wraps
from flask import request, jsonify, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from ..models.entities import UserContext
from ..services.auth import TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """Extracts and validates bearer tokens and builds the user context."""

    def __init__(self, auth_service):
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:] or None

        return auth_header

    def build_user_context(self, token_payload: Dict[str, Any]) -> UserContext:
        """Build user context from a validated token payload and the current request."""
        return UserContext(
            user_id=token_payload["sub"],
            role=token_payload["role"],
            email=token_payload.get("email"),
            ip_address=request.remote_addr,
            user_agent=request.headers.get('User-Agent', '')
        )


def _problem(title: str, detail: str, error_type: str, status: int):
    return jsonify({
        "type": f"https://api.hemolink.org/problems/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": request.path
    }), status


def require_auth(auth_middleware: AuthMiddleware) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    Args:
        auth_middleware: Configured AuthMiddleware instance

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.validate_request") as span:
                token = auth_middleware.extract_token_from_request()
                if not token:
                    span.set_attribute("auth.result", "missing_token")
                    logger.warning("Authentication failed: missing token")
                    return _problem(
                        "Authentication Required", "Missing authorization token",
                        "authentication-required", 401
                    )

                try:
                    token_payload = auth_middleware.auth_service.validate_token(token, "access")
                except TokenValidationError as e:
                    span.set_attribute("auth.result", "invalid_token")
                    logger.warning(f"Authentication failed: {str(e)}")
                    return _problem("Invalid Token", str(e), "invalid-token", 401)

                user_context = auth_middleware.build_user_context(token_payload)
                g.user_context = user_context

                span.set_attributes({
                    "auth.result": "success",
                    "user.id": user_context.user_id,
                    "user.role": user_context.role
                })
                logger.debug(
                    "Authentication successful",
                    extra={
                        "user_id": user_context.user_id,
                        "role": user_context.role,
                        "ip_address": user_context.ip_address
                    }
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_jwt(f: Callable) -> Callable:
    """Require a valid token using the application's configured AuthMiddleware."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware = current_app.auth_middleware
        return require_auth(auth_middleware)(f)(*args, **kwargs)
    return decorated_function
