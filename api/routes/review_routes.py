"""
Review endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from api.auth import protect
from api.dependencies import get_review_service
from api.models import CurrentUser, ReviewCreate, ReviewUpdate
from services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("")
async def get_reviews(
    request: Request,
    bookId: Optional[str] = None,
    select: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    review_service: ReviewService = Depends(get_review_service)
):
    """
    List reviews for a book.

    - **bookId**: Required book identifier
    - **select**, **sort**, **page**, **limit**: As for the book listing
    """
    data = await review_service.list_reviews(
        request.query_params.multi_items(),
        select=select,
        sort=sort,
        page=page,
        limit=limit
    )
    return {"success": True, "data": data}


@router.get("/{review_id}")
async def get_review(review_id: str, review_service: ReviewService = Depends(get_review_service)):
    data = await review_service.get_review(review_id)
    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_review(
    payload: ReviewCreate,
    user: CurrentUser = Depends(protect),
    review_service: ReviewService = Depends(get_review_service)
):
    data = await review_service.create_review(payload, user)
    return {"success": True, "message": "Review submitted successfully", "data": data}


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    user: CurrentUser = Depends(protect),
    review_service: ReviewService = Depends(get_review_service)
):
    data = await review_service.update_review(review_id, payload, user)
    return {"success": True, "message": "Review updated successfully", "data": data}


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    user: CurrentUser = Depends(protect),
    review_service: ReviewService = Depends(get_review_service)
):
    await review_service.delete_review(review_id, user)
    return {"success": True, "message": "Review deleted successfully"}
