#!/usr/bin/env python3
"""
Access tokens for the extension (Authlib, HS256)

Tokens carry userId/email/role and expire after JWT_EXPIRES_IN.
"""

from __future__ import annotations

import time
from typing import Any

from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger

from scale_api.config import Settings
from scale_api.utils.errors import AuthError, InternalError

_jwt = JsonWebToken(["HS256"])


class TokenService:
    """Issues and verifies access tokens"""

    def __init__(self, settings: Settings):
        self._secret = settings.JWT_SECRET
        self.expires_in = settings.jwt_expires_seconds

    def _key(self):
        if not self._secret:
            logger.error("JWT_SECRET not configured")
            raise InternalError("Authentication service not configured")
        return JsonWebKey.import_key(self._secret, {"kty": "oct"})

    def generate_token(self, user_id: str, email: str | None = None, role: str = "user") -> str:
        now = int(time.time())
        payload = {"userId": user_id, "email": email, "role": role, "iat": now, "exp": now + self.expires_in}
        token = _jwt.encode({"alg": "HS256", "typ": "JWT"}, payload, self._key())
        return token.decode("utf-8") if isinstance(token, bytes) else token

    def verify_token(self, token: str) -> dict[str, Any]:
        """Decode and validate; raises AuthError on any failure"""
        key = self._key()
        try:
            claims = _jwt.decode(token, key)
            claims.validate()
        except JoseError as e:
            logger.warning(f"Token rejected: {e}")
            raise AuthError("Invalid or expired token") from e
        except ValueError as e:
            logger.warning(f"Malformed token: {e}")
            raise AuthError("Invalid or expired token") from e
        if not claims.get("userId"):
            raise AuthError("Token is missing the user identifier")
        return dict(claims)
