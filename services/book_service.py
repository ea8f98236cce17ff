"""
Book catalogue operations.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from api.database import APIDatabaseService, parse_object_id, serialize_document
from api.models import BookCreate, BookUpdate, CurrentUser
from api.query import (
    build_filter_query, build_pagination, build_search_query, combine_queries,
    parse_pagination, parse_projection, parse_sort
)
from services.exceptions import AuthorizationError, NotFoundError
from services.review_service import populate_reviewers

logger = structlog.get_logger(__name__)

BOOK_FIELD_TYPES = {
    "rating": "number",
    "reviewCount": "number",
    "featured": "bool",
    "authorId": "objectid",
    "_id": "objectid",
}
SEARCH_FIELDS = ("title", "author", "genre")


class BookService:
    """Catalogue queries and admin mutations."""

    def __init__(self, db: APIDatabaseService, default_page_size: int = 10, max_page_size: int = 100):
        self.db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _get_book_or_404(self, book_id: str) -> Dict:
        book = await self.db.get_book(parse_object_id(book_id, "Book"))
        if not book:
            raise NotFoundError(f"Book not found with id of {book_id}")
        return book

    async def list_books(
        self,
        params: Iterable[Tuple[str, str]],
        select: Optional[str] = None,
        sort: Optional[str] = None,
        page=None,
        limit=None,
        search: Optional[str] = None
    ) -> Dict:
        """
        Filter, search, project, sort and paginate the catalogue.

        Args:
            params: Raw query-string pairs; reserved keys are ignored
            select: Comma-separated projection
            sort: Comma-separated sort fields, ``-`` for descending
            page: Page number (starts from 1)
            limit: Items per page
            search: Case-insensitive substring over title, author and genre

        Returns:
            ``{"books": [...], "pagination": {...}}``
        """
        query = combine_queries(
            build_filter_query(params, BOOK_FIELD_TYPES),
            build_search_query(search, SEARCH_FIELDS)
        )
        projection = parse_projection(select)
        sort_pairs = parse_sort(sort)
        page, limit = parse_pagination(page, limit, self.default_page_size, self.max_page_size)

        total = await self.db.count_books(query)
        books = await self.db.find_books(query, projection, sort_pairs, (page - 1) * limit, limit)

        return {
            "books": [serialize_document(book) for book in books],
            "pagination": build_pagination(total, page, limit, "totalBooks"),
        }

    async def get_book(self, book_id: str) -> Dict:
        """Fetch a book with its reviews and each reviewer's public identity."""
        book = await self._get_book_or_404(book_id)
        reviews = await self.db.find_reviews({"bookId": book["_id"]}, sort=[("createdAt", -1)])
        book["reviews"] = await populate_reviewers(self.db, reviews)
        return serialize_document(book)

    async def create_book(self, payload: BookCreate, acting_user: CurrentUser) -> Dict:
        """The acting admin always becomes the owner and displayed author."""
        book_doc = payload.dict(by_alias=True)
        book_doc["authorId"] = parse_object_id(acting_user.id, "User")
        book_doc["author"] = acting_user.username or acting_user.name

        book = await self.db.create_book(book_doc)
        logger.info("Book created", book_id=str(book["_id"]), owner_id=acting_user.id)
        return serialize_document(book)

    async def update_book(self, book_id: str, payload: BookUpdate) -> Dict:
        book = await self._get_book_or_404(book_id)

        fields = payload.dict(by_alias=True, exclude_unset=True, exclude_none=True)
        if not fields:
            return serialize_document(book)

        updated = await self.db.update_book(book["_id"], fields)
        if updated is None:
            raise NotFoundError(f"Book not found with id of {book_id}")

        logger.info("Book updated", book_id=book_id, fields=sorted(fields))
        return serialize_document(updated)

    async def delete_book(self, book_id: str, acting_user: CurrentUser) -> None:
        """
        Delete a book owned by the acting admin, together with its reviews.

        Raises:
            NotFoundError: If the book does not exist
            AuthorizationError: If the acting admin does not own the book
        """
        book = await self._get_book_or_404(book_id)

        if str(book.get("authorId")) != acting_user.id:
            logger.warning("Book delete refused", book_id=book_id, user_id=acting_user.id)
            raise AuthorizationError("Not authorized to delete this book", 403)

        removed_reviews = await self.db.delete_reviews_for_book(book["_id"])
        await self.db.delete_book(book["_id"])
        logger.info("Book deleted", book_id=book_id, removed_reviews=removed_reviews)

    async def list_my_books(self, acting_user: CurrentUser) -> List[Dict]:
        owner_id = parse_object_id(acting_user.id, "User")
        books = await self.db.find_books({"authorId": owner_id}, sort=[("createdAt", -1)])
        return [serialize_document(book) for book in books]
