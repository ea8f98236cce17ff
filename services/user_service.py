"""
User profiles and reading lists.

Profile reads are open to the owner and admins; profile writes and reading
list changes are restricted to the owner.
"""

from datetime import datetime
from typing import Dict, List

import structlog

from api.database import APIDatabaseService, parse_object_id, serialize_document
from api.models import CurrentUser, UserRole, UserUpdate
from services.exceptions import AuthorizationError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

PROFILE_FIELDS = (
    "_id", "username", "email", "name", "bio", "avatar",
    "role", "preferences", "readingList", "createdAt",
)
READING_LIST_BOOK_FIELDS = {"title": 1, "author": 1, "coverImage": 1}


class UserService:
    """Profile and reading-list operations."""

    def __init__(self, db: APIDatabaseService):
        self.db = db

    async def _get_user_or_404(self, user_id: str) -> Dict:
        user = await self.db.get_user_by_id(parse_object_id(user_id, "User"))
        if not user:
            raise NotFoundError(f"User not found with id of {user_id}")
        return user

    @staticmethod
    def _is_self(user_id: str, acting_user: CurrentUser) -> bool:
        return parse_object_id(user_id, "User") == parse_object_id(acting_user.id, "User")

    def _require_self(self, user_id: str, acting_user: CurrentUser, message: str) -> None:
        if not self._is_self(user_id, acting_user):
            logger.warning("Profile access refused", target_id=user_id, user_id=acting_user.id)
            raise AuthorizationError(message, 401)

    async def _expand_reading_list(self, reading_list: List[Dict]) -> List[Dict]:
        """Resolve book references; entries for deleted books get ``bookId: None``."""
        books = await self.db.get_books_by_ids(
            [entry["bookId"] for entry in reading_list],
            READING_LIST_BOOK_FIELDS
        )
        return [
            {"bookId": books.get(entry["bookId"]), "addedAt": entry.get("addedAt")}
            for entry in reading_list
        ]

    async def _profile(self, user: Dict) -> Dict:
        profile = {field: user.get(field) for field in PROFILE_FIELDS}
        profile["readingList"] = await self._expand_reading_list(user.get("readingList") or [])
        return serialize_document(profile)

    async def get_profile(self, user_id: str, acting_user: CurrentUser) -> Dict:
        """
        Profile of a user, visible to that user and to admins.

        Raises:
            NotFoundError: If the user does not exist
            AuthorizationError: If the caller is neither the user nor an admin
        """
        user = await self._get_user_or_404(user_id)

        if not self._is_self(user_id, acting_user) and not acting_user.is_admin:
            raise AuthorizationError("Not authorized to access this profile", 401)

        return await self._profile(user)

    async def update_profile(self, user_id: str, payload: UserUpdate, acting_user: CurrentUser) -> Dict:
        """Apply allow-listed fields. Admins cannot edit other users' profiles."""
        self._require_self(user_id, acting_user, "Not authorized to update this profile")
        user = await self._get_user_or_404(user_id)

        fields = payload.dict(exclude_unset=True, exclude_none=True)
        if not fields:
            return await self._profile(user)

        conflict = await self.db.find_user_conflict(
            email=fields.get("email"),
            username=fields.get("username"),
            exclude_id=user["_id"]
        )
        if conflict:
            if fields.get("email") and conflict.get("email") == fields["email"]:
                raise ValidationError("Email is already registered")
            raise ValidationError("Username is already taken")

        updated = await self.db.update_user(user["_id"], fields)
        if updated is None:
            raise NotFoundError(f"User not found with id of {user_id}")

        logger.info("Profile updated", user_id=user_id, fields=sorted(fields))
        return await self._profile(updated)

    async def add_to_reading_list(self, user_id: str, book_id: str, acting_user: CurrentUser) -> Dict:
        """
        Append a book to the caller's reading list.

        Raises:
            AuthorizationError: If the list belongs to someone else
            NotFoundError: If the book or user does not exist
            ValidationError: If the book is already in the list
        """
        self._require_self(user_id, acting_user, "Not authorized to update this reading list")

        book = await self.db.get_book(parse_object_id(book_id, "Book"))
        if not book:
            raise NotFoundError(f"Book not found with id of {book_id}")

        user = await self._get_user_or_404(user_id)
        if any(entry.get("bookId") == book["_id"] for entry in user.get("readingList") or []):
            raise ValidationError("Book already in reading list")

        entry = {"bookId": book["_id"], "addedAt": datetime.utcnow()}
        if not await self.db.push_reading_list_entry(user["_id"], entry):
            raise ValidationError("Book already in reading list")

        logger.info("Book added to reading list", user_id=user_id, book_id=book_id)
        return serialize_document({
            "bookId": book["_id"],
            "title": book.get("title"),
            "author": book.get("author"),
            "coverImage": book.get("coverImage"),
            "addedAt": entry["addedAt"],
        })

    async def remove_from_reading_list(self, user_id: str, book_id: str, acting_user: CurrentUser) -> None:
        self._require_self(user_id, acting_user, "Not authorized to update this reading list")
        user = await self._get_user_or_404(user_id)

        entry = next(
            (item for item in user.get("readingList") or [] if str(item.get("bookId")) == book_id.lower()),
            None
        )
        if entry is None:
            raise NotFoundError("Book not found in reading list")

        await self.db.pull_reading_list_entry(user["_id"], entry["bookId"])
        logger.info("Book removed from reading list", user_id=user_id, book_id=book_id)

    async def promote_to_admin(self, email: str) -> Dict:
        """Give the admin role to the user with this email."""
        user = await self.db.get_user_by_email(email.lower())
        if not user:
            raise NotFoundError(f"User with email {email} not found")

        updated = await self.db.update_user(user["_id"], {"role": UserRole.ADMIN.value})
        logger.info("User promoted to admin", user_id=str(user["_id"]))
        return serialize_document(updated)

    async def list_users(self, limit: int = 100) -> List[Dict]:
        users = await self.db.get_users(limit)
        return [serialize_document(user) for user in users]
