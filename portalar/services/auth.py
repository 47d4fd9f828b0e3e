"""Admin authentication.

There is a single admin identity: the password is checked against the bcrypt
hash from configuration and a signed HS256 token is issued for it.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
import structlog

from portalar.core.config import Settings
from portalar.core.errors import AuthenticationError

logger = structlog.get_logger()

ADMIN_SUBJECT = "admin"
ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = 12) -> str:
    """Generate a bcrypt hash suitable for ADMIN_PASSWORD_HASH"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class AuthGate:
    """Issues and verifies admin tokens"""

    def __init__(self, settings: Settings):
        self._password_hash = settings.admin_password_hash.encode("utf-8")
        self._secret = settings.admin_jwt_secret
        self.expires_in = settings.jwt_expires_in

    def check_password(self, password: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), self._password_hash)
        except ValueError:
            # bcrypt refuses passwords over 72 bytes
            return False

    def issue_token(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": ADMIN_SUBJECT,
            "username": ADMIN_SUBJECT,
            "role": ADMIN_SUBJECT,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_in),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    async def login(self, password: str) -> str:
        """Exchange the admin password for a token"""
        # bcrypt runs in a worker thread
        if not await asyncio.to_thread(self.check_password, password):
            raise AuthenticationError("Invalid credentials", reason="bad_password")

        logger.info("admin_login_succeeded")
        return self.issue_token()

    def verify(self, token: Optional[str]) -> dict[str, Any]:
        """
        Decode and validate an admin token.

        Raises:
            AuthenticationError: reason is one of missing, malformed,
                invalid_signature, invalid_claims or expired
        """
        if not token:
            raise AuthenticationError("Authentication token required", reason="missing")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "sub"]}
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired", reason="expired") from e
        except jwt.InvalidSignatureError as e:
            raise AuthenticationError("Invalid token", reason="invalid_signature") from e
        except jwt.DecodeError as e:
            raise AuthenticationError("Invalid token", reason="malformed") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token", reason="invalid_claims") from e

        if claims.get("sub") != ADMIN_SUBJECT:
            raise AuthenticationError("Invalid token", reason="invalid_claims")

        return claims
