"""
Password hashing and signed session tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict

import jwt
import structlog
from werkzeug.security import check_password_hash, generate_password_hash

from services.exceptions import AuthError

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    """One-way hash for storage."""
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a plain password against a stored hash."""
    if not password_hash or password is None:
        return False
    return check_password_hash(password_hash, password)


class TokenManager:
    """Issues and verifies HS256 session tokens bound to a user id."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24 * 30):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def _claims(self, user_id: str) -> Dict:
        now = datetime.now(timezone.utc)
        return {
            "id": str(user_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }

    def create_token(self, user_id: str) -> str:
        """Sign a token carrying the user id."""
        return jwt.encode(self._claims(user_id), self.secret_key, algorithm=self.algorithm)

    def issue_tokens(self, user_id: str) -> Dict[str, str]:
        """
        Access and refresh tokens for a login or registration response.

        Both tokens carry the same claims; there is no separate refresh flow.
        """
        claims = self._claims(user_id)
        return {
            "token": jwt.encode(claims, self.secret_key, algorithm=self.algorithm),
            "refreshToken": jwt.encode(claims, self.secret_key, algorithm=self.algorithm),
        }

    def decode_token(self, token: str) -> Dict:
        """
        Verify signature and expiry.

        Raises:
            AuthError: If the token is expired, malformed or lacks a user id
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Expired token presented")
            raise AuthError("Not authorized to access this route")
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token presented", error=str(e))
            raise AuthError("Not authorized to access this route")

        if not payload.get("id"):
            raise AuthError("Not authorized to access this route")
        return payload
