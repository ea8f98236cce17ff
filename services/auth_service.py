"""
Registration, login and identity lookup.
"""

from typing import Dict

import structlog

from api.database import APIDatabaseService, parse_object_id, serialize_document
from api.models import LoginRequest, RegisterRequest
from services.exceptions import AuthError, NotFoundError, ValidationError
from services.security import TokenManager, hash_password, verify_password

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """Validates credentials and issues session tokens."""

    def __init__(self, db: APIDatabaseService, token_manager: TokenManager):
        self.db = db
        self.token_manager = token_manager

    def _token_response(self, user: Dict) -> Dict:
        return {
            "userId": str(user["_id"]),
            "username": user["username"],
            "email": user["email"],
            "name": user.get("name"),
            "role": user.get("role", "user"),
            **self.token_manager.issue_tokens(str(user["_id"])),
        }

    async def register(self, payload: RegisterRequest) -> Dict:
        """
        Create a user and issue tokens.

        Raises:
            ValidationError: If the email or username is already taken
        """
        conflict = await self.db.find_user_conflict(email=payload.email, username=payload.username)
        if conflict:
            if conflict.get("email") == payload.email:
                raise ValidationError("Email is already registered")
            raise ValidationError("Username is already taken")

        user = await self.db.create_user({
            "username": payload.username,
            "email": payload.email,
            "password": hash_password(payload.password),
            "name": payload.name,
            "bio": None,
            "avatar": None,
            "role": payload.resolved_role().value,
            "preferences": {},
            "readingList": [],
        })

        logger.info("User registered", user_id=str(user["_id"]), role=user["role"])
        return self._token_response(user)

    async def login(self, payload: LoginRequest) -> Dict:
        """
        Authenticate by email and password.

        Unknown email and wrong password fail with the same message.
        """
        if not payload.email or not payload.password:
            raise ValidationError("Please provide an email and password")

        user = await self.db.get_user_by_email(payload.email.lower(), include_password=True)
        if not user or not verify_password(user.get("password"), payload.password):
            logger.info("Failed login attempt")
            raise AuthError(INVALID_CREDENTIALS)

        logger.info("User logged in", user_id=str(user["_id"]))
        return self._token_response(user)

    async def get_current_user(self, token: str) -> Dict:
        """Resolve the user bound to a token."""
        if not token:
            raise AuthError("Not authorized to access this route")

        payload = self.token_manager.decode_token(token)
        try:
            user_id = parse_object_id(payload["id"], "User")
        except NotFoundError:
            raise AuthError("Not authorized to access this route")

        user = await self.db.get_user_by_id(user_id)
        if not user:
            raise AuthError("Not authorized to access this route")
        return serialize_document(user)

    async def logout(self) -> Dict:
        """Tokens are not tracked server side, so this only acknowledges."""
        return {}
