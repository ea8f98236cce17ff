"""
Review operations and the rating recomputation they trigger.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import structlog
from pymongo.errors import DuplicateKeyError

from api.database import APIDatabaseService, parse_object_id, serialize_document
from api.models import CurrentUser, ReviewCreate, ReviewUpdate
from api.query import build_filter_query, build_pagination, parse_pagination, parse_projection, parse_sort
from services.exceptions import AuthorizationError, NotFoundError, ValidationError
from services.ratings import refresh_book_rating

logger = structlog.get_logger(__name__)

REVIEW_FIELD_TYPES = {
    "bookId": "objectid",
    "userId": "objectid",
    "rating": "number",
    "_id": "objectid",
}
REVIEWER_FIELDS = {"name": 1, "username": 1, "avatar": 1}


async def populate_reviewers(db: APIDatabaseService, reviews: List[Dict]) -> List[Dict]:
    """
    Replace each review's ``userId`` with the reviewer's public identity.

    Reviews whose author no longer exists get ``userId: None``.
    """
    user_ids = [review["userId"] for review in reviews if review.get("userId") is not None]
    users = await db.get_users_by_ids(user_ids, REVIEWER_FIELDS)

    populated = []
    for review in reviews:
        if "userId" in review:
            review = dict(review, userId=users.get(review["userId"]))
        populated.append(serialize_document(review))
    return populated


class ReviewService:
    """Review CRUD with ownership checks."""

    def __init__(self, db: APIDatabaseService, default_page_size: int = 10, max_page_size: int = 100):
        self.db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _get_review_or_404(self, review_id: str) -> Dict:
        review = await self.db.get_review(parse_object_id(review_id, "Review"))
        if not review:
            raise NotFoundError(f"Review not found with id of {review_id}")
        return review

    @staticmethod
    def _check_owner(review: Dict, acting_user: CurrentUser, action: str) -> None:
        if str(review.get("userId")) != acting_user.id and not acting_user.is_admin:
            logger.warning(
                "Review change refused",
                action=action,
                review_id=str(review["_id"]),
                user_id=acting_user.id
            )
            raise AuthorizationError(f"Not authorized to {action} this review", 401)

    async def list_reviews(
        self,
        params: Iterable[Tuple[str, str]],
        select: Optional[str] = None,
        sort: Optional[str] = None,
        page=None,
        limit=None
    ) -> Dict:
        """
        List the reviews of one book.

        Raises:
            ValidationError: If no ``bookId`` filter is given
        """
        params = list(params)
        if not any(key == "bookId" and value for key, value in params):
            raise ValidationError("Please provide a book ID")

        query = build_filter_query(params, REVIEW_FIELD_TYPES)
        projection = parse_projection(select)
        sort_pairs = parse_sort(sort)
        page, limit = parse_pagination(page, limit, self.default_page_size, self.max_page_size)

        total = await self.db.count_reviews(query)
        reviews = await self.db.find_reviews(query, projection, sort_pairs, (page - 1) * limit, limit)

        return {
            "reviews": await populate_reviewers(self.db, reviews),
            "pagination": build_pagination(total, page, limit, "totalReviews"),
        }

    async def get_review(self, review_id: str) -> Dict:
        review = await self._get_review_or_404(review_id)
        populated = await populate_reviewers(self.db, [review])
        return populated[0]

    async def create_review(self, payload: ReviewCreate, acting_user: CurrentUser) -> Dict:
        """
        Submit a review and refresh the book's aggregate rating.

        Raises:
            NotFoundError: If the book does not exist
            ValidationError: If the user wrote the book or already reviewed it
        """
        book_id = parse_object_id(payload.book_id, "Book")
        user_id = parse_object_id(acting_user.id, "User")

        book = await self.db.get_book(book_id)
        if not book:
            raise NotFoundError(f"Book not found with id of {payload.book_id}")

        if book.get("authorId") == user_id or book.get("author") == acting_user.username:
            raise ValidationError("Authors cannot review their own books")

        if await self.db.find_review(book_id, user_id):
            raise ValidationError("You have already reviewed this book")

        try:
            review = await self.db.create_review({
                "bookId": book_id,
                "userId": user_id,
                "rating": payload.rating,
                "comment": payload.comment,
            })
        except DuplicateKeyError:
            # Lost a race with a concurrent submission by the same user
            raise ValidationError("You have already reviewed this book")

        await refresh_book_rating(self.db, book_id)
        logger.info("Review created", review_id=str(review["_id"]), book_id=str(book_id))

        populated = await populate_reviewers(self.db, [review])
        return populated[0]

    async def update_review(self, review_id: str, payload: ReviewUpdate, acting_user: CurrentUser) -> Dict:
        review = await self._get_review_or_404(review_id)
        self._check_owner(review, acting_user, "update")

        fields = payload.dict(by_alias=True, exclude_unset=True, exclude_none=True)
        if fields:
            updated = await self.db.update_review(review["_id"], fields)
            if updated is None:
                raise NotFoundError(f"Review not found with id of {review_id}")
            review = updated
            await refresh_book_rating(self.db, review["bookId"])
            logger.info("Review updated", review_id=review_id, fields=sorted(fields))

        populated = await populate_reviewers(self.db, [review])
        return populated[0]

    async def delete_review(self, review_id: str, acting_user: CurrentUser) -> None:
        review = await self._get_review_or_404(review_id)
        self._check_owner(review, acting_user, "delete")

        book_id = review["bookId"]
        await self.db.delete_review(review["_id"])
        await refresh_book_rating(self.db, book_id)
        logger.info("Review deleted", review_id=review_id, book_id=str(book_id))
