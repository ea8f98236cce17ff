"""
Database service layer for the FastAPI application.

Wraps the ``users``, ``books`` and ``reviews`` collections with the async
operations the domain services need.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from services.exceptions import NotFoundError

logger = structlog.get_logger(__name__)

PASSWORD_EXCLUDED = {"password": 0}


def parse_object_id(value: Any, entity: str = "Resource") -> ObjectId:
    """
    Convert a path or body identifier into an ObjectId.

    Raises:
        NotFoundError: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found with id of {value}")


def serialize_document(document: Optional[Dict]) -> Optional[Dict]:
    """
    Make a MongoDB document JSON friendly.

    ``_id`` becomes ``id``, ObjectIds become strings, datetimes become ISO
    strings and the password hash is always dropped.
    """
    if document is None:
        return None

    result = {}
    for key, value in document.items():
        if key == "password":
            continue
        if key == "_id":
            key = "id"
        result[key] = _serialize_value(value)
    return result


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_document(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


async def connect_to_database(mongodb_url: str, database_name: str) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """Open a client and verify the server answers a ping."""
    client = AsyncIOMotorClient(mongodb_url)
    database = client[database_name]
    await database.command("ping")
    logger.info("Database connection established", database=database_name)
    return client, database


class APIDatabaseService:
    """Database service for API operations."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.users_collection = database.users
        self.books_collection = database.books
        self.reviews_collection = database.reviews

    async def ensure_indexes(self) -> None:
        """Create the indexes backing uniqueness rules and common queries."""
        try:
            await self.users_collection.create_index("email", unique=True)
            await self.users_collection.create_index("username", unique=True)

            await self.books_collection.create_index("authorId")
            await self.books_collection.create_index([("createdAt", DESCENDING)])

            # At most one review per user and book
            await self.reviews_collection.create_index(
                [("bookId", ASCENDING), ("userId", ASCENDING)], unique=True
            )
            await self.reviews_collection.create_index("bookId")

            logger.info("Successfully created MongoDB indexes")
        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    # Users

    async def get_user_by_id(self, user_id: ObjectId, include_password: bool = False) -> Optional[Dict]:
        """Fetch a user; the password hash is omitted unless requested."""
        projection = None if include_password else PASSWORD_EXCLUDED
        return await self.users_collection.find_one({"_id": user_id}, projection)

    async def get_user_by_email(self, email: str, include_password: bool = False) -> Optional[Dict]:
        """Fetch a user by email."""
        projection = None if include_password else PASSWORD_EXCLUDED
        return await self.users_collection.find_one({"email": email}, projection)

    async def find_user_conflict(
        self,
        email: Optional[str] = None,
        username: Optional[str] = None,
        exclude_id: Optional[ObjectId] = None
    ) -> Optional[Dict]:
        """
        Find another user already holding the given email or username.

        Args:
            email: Email to check
            username: Username to check
            exclude_id: User to ignore (the one being updated)

        Returns:
            The conflicting user document, or None
        """
        clauses = []
        if email:
            clauses.append({"email": email})
        if username:
            clauses.append({"username": username})
        if not clauses:
            return None

        query: Dict = {"$or": clauses}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return await self.users_collection.find_one(query, {"email": 1, "username": 1})

    async def create_user(self, user_doc: Dict) -> Dict:
        """Insert a user document and return it with its id."""
        now = datetime.utcnow()
        user_doc.setdefault("createdAt", now)
        user_doc.setdefault("updatedAt", now)
        result = await self.users_collection.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id
        logger.debug("User inserted", user_id=str(result.inserted_id))
        return user_doc

    async def update_user(self, user_id: ObjectId, fields: Dict) -> Optional[Dict]:
        """Set fields on a user and return the updated document without password."""
        fields = dict(fields, updatedAt=datetime.utcnow())
        return await self.users_collection.find_one_and_update(
            {"_id": user_id},
            {"$set": fields},
            projection=PASSWORD_EXCLUDED,
            return_document=ReturnDocument.AFTER
        )

    async def push_reading_list_entry(self, user_id: ObjectId, entry: Dict) -> bool:
        """
        Append an entry unless the book is already in the list.

        Returns:
            True if the entry was appended
        """
        result = await self.users_collection.update_one(
            {"_id": user_id, "readingList.bookId": {"$ne": entry["bookId"]}},
            {"$push": {"readingList": entry}, "$set": {"updatedAt": datetime.utcnow()}}
        )
        return result.modified_count > 0

    async def pull_reading_list_entry(self, user_id: ObjectId, book_id: ObjectId) -> bool:
        """Remove a book from a reading list; True if something was removed."""
        result = await self.users_collection.update_one(
            {"_id": user_id},
            {"$pull": {"readingList": {"bookId": book_id}}, "$set": {"updatedAt": datetime.utcnow()}}
        )
        return result.modified_count > 0

    async def get_users(self, limit: int = 100) -> List[Dict]:
        """List users, newest first."""
        cursor = self.users_collection.find({}, PASSWORD_EXCLUDED).sort("createdAt", DESCENDING).limit(limit)
        return await cursor.to_list(length=limit)

    async def get_users_by_ids(self, user_ids: Iterable[ObjectId], projection: Optional[Dict] = None) -> Dict[ObjectId, Dict]:
        """Fetch several users keyed by id."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        cursor = self.users_collection.find({"_id": {"$in": ids}}, projection or PASSWORD_EXCLUDED)
        users = await cursor.to_list(length=len(ids))
        return {user["_id"]: user for user in users}

    # Books

    async def find_books(
        self,
        query: Dict,
        projection: Optional[Dict] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[Dict]:
        """Run a filtered, sorted and paginated book query."""
        try:
            cursor = self.books_collection.find(query, projection)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=limit or None)
        except Exception as e:
            logger.error("Failed to get books", error=str(e), query=str(query))
            raise

    async def count_books(self, query: Dict) -> int:
        return await self.books_collection.count_documents(query)

    async def get_book(self, book_id: ObjectId, projection: Optional[Dict] = None) -> Optional[Dict]:
        return await self.books_collection.find_one({"_id": book_id}, projection)

    async def get_books_by_ids(self, book_ids: Iterable[ObjectId], projection: Optional[Dict] = None) -> Dict[ObjectId, Dict]:
        """Fetch several books keyed by id."""
        ids = list(set(book_ids))
        if not ids:
            return {}
        cursor = self.books_collection.find({"_id": {"$in": ids}}, projection)
        books = await cursor.to_list(length=len(ids))
        return {book["_id"]: book for book in books}

    async def create_book(self, book_doc: Dict) -> Dict:
        """Insert a book with zeroed aggregates and timestamps."""
        now = datetime.utcnow()
        book_doc.setdefault("rating", 0)
        book_doc.setdefault("reviewCount", 0)
        book_doc.setdefault("createdAt", now)
        book_doc.setdefault("updatedAt", now)
        result = await self.books_collection.insert_one(book_doc)
        book_doc["_id"] = result.inserted_id
        return book_doc

    async def update_book(self, book_id: ObjectId, fields: Dict) -> Optional[Dict]:
        """Set fields on a book and return the updated document."""
        fields = dict(fields, updatedAt=datetime.utcnow())
        return await self.books_collection.find_one_and_update(
            {"_id": book_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )

    async def delete_book(self, book_id: ObjectId) -> bool:
        result = await self.books_collection.delete_one({"_id": book_id})
        return result.deleted_count > 0

    # Reviews

    async def find_reviews(
        self,
        query: Dict,
        projection: Optional[Dict] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[Dict]:
        """Run a filtered, sorted and paginated review query."""
        try:
            cursor = self.reviews_collection.find(query, projection)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=limit or None)
        except Exception as e:
            logger.error("Failed to get reviews", error=str(e), query=str(query))
            raise

    async def count_reviews(self, query: Dict) -> int:
        return await self.reviews_collection.count_documents(query)

    async def get_review(self, review_id: ObjectId) -> Optional[Dict]:
        return await self.reviews_collection.find_one({"_id": review_id})

    async def find_review(self, book_id: ObjectId, user_id: ObjectId) -> Optional[Dict]:
        """Find the review a user wrote for a book, if any."""
        return await self.reviews_collection.find_one({"bookId": book_id, "userId": user_id})

    async def create_review(self, review_doc: Dict) -> Dict:
        now = datetime.utcnow()
        review_doc.setdefault("createdAt", now)
        review_doc.setdefault("updatedAt", now)
        result = await self.reviews_collection.insert_one(review_doc)
        review_doc["_id"] = result.inserted_id
        return review_doc

    async def update_review(self, review_id: ObjectId, fields: Dict) -> Optional[Dict]:
        fields = dict(fields, updatedAt=datetime.utcnow())
        return await self.reviews_collection.find_one_and_update(
            {"_id": review_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )

    async def delete_review(self, review_id: ObjectId) -> bool:
        result = await self.reviews_collection.delete_one({"_id": review_id})
        return result.deleted_count > 0

    async def delete_reviews_for_book(self, book_id: ObjectId) -> int:
        """Remove every review of a book; returns how many were removed."""
        result = await self.reviews_collection.delete_many({"bookId": book_id})
        return result.deleted_count

    async def aggregate_review_stats(self, book_id: ObjectId) -> Optional[Dict]:
        """
        Average rating and review count for a book.

        Returns:
            ``{"averageRating": float, "reviewCount": int}`` or None when the
            book has no reviews
        """
        pipeline = [
            {"$match": {"bookId": book_id}},
            {"$group": {
                "_id": "$bookId",
                "averageRating": {"$avg": "$rating"},
                "reviewCount": {"$sum": 1}
            }}
        ]
        cursor = self.reviews_collection.aggregate(pipeline)
        stats = await cursor.to_list(length=1)
        return stats[0] if stats else None

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            return {
                "status": "healthy",
                "users_count": await self.users_collection.estimated_document_count(),
                "books_count": await self.books_collection.estimated_document_count(),
                "reviews_count": await self.reviews_collection.estimated_document_count()
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
