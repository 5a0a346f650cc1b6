# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token issue and validation.

Tokens carry the user ID in ``sub`` and the platform role in ``role``. The
signing algorithm defaults to HS256 with a shared secret.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from opentelemetry import trace
import logging

from ..models.enums import UserRole

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """
    JWT authentication service.

    Issues short-lived access tokens and validates incoming bearer tokens.
    """

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 access_token_expire_minutes: int = 15):
        """
        Initialize the authentication service.

        Args:
            secret: Signing secret (``JWT_SECRET`` when omitted)
            algorithm: JWT algorithm (``JWT_ALGORITHM``, default HS256)
            access_token_expire_minutes: Access token lifetime
        """
        self.secret = secret or os.getenv("JWT_SECRET")
        if not self.secret:
            logger.warning("No JWT_SECRET found, using development secret")
            self.secret = "dev-secret-key"
        self.algorithm = algorithm or os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_minutes = access_token_expire_minutes

    def generate_access_token(self, user_id: str, role: str, email: Optional[str] = None) -> str:
        """Issue an access token for a user; used by tooling and tests."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "role": UserRole(role).value,
            "iat": now,
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
            "type": "access"
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type when the token declares one

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid, expired or lacks a
                known role
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.token_type", token_type)

            try:
                payload = jwt.decode(
                    token,
                    self.secret,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type", token_type) != token_type:
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            try:
                UserRole(payload.get("role"))
            except ValueError:
                span.set_attribute("auth.validation_result", "unknown_role")
                raise TokenValidationError("Token does not carry a valid role")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload["sub"]
            })
            logger.debug(
                "Token validated successfully",
                extra={"user_id": payload["sub"], "role": payload["role"]}
            )
            return payload
