"""
User profile and reading list endpoints.
"""

from fastapi import APIRouter, Depends

from api.auth import protect
from api.dependencies import get_user_service
from api.models import CurrentUser, ReadingListRequest, UserUpdate
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/{user_id}")
async def get_user_profile(
    user_id: str,
    user: CurrentUser = Depends(protect),
    user_service: UserService = Depends(get_user_service)
):
    """Profile of a user; callers may read their own profile, admins any."""
    data = await user_service.get_profile(user_id, user)
    return {"success": True, "data": data}


@router.put("/{user_id}")
async def update_user_profile(
    user_id: str,
    payload: UserUpdate,
    user: CurrentUser = Depends(protect),
    user_service: UserService = Depends(get_user_service)
):
    """Update the caller's own profile."""
    data = await user_service.update_profile(user_id, payload, user)
    return {"success": True, "message": "Profile updated successfully", "data": data}


@router.post("/{user_id}/reading-list")
async def add_to_reading_list(
    user_id: str,
    payload: ReadingListRequest,
    user: CurrentUser = Depends(protect),
    user_service: UserService = Depends(get_user_service)
):
    data = await user_service.add_to_reading_list(user_id, payload.book_id, user)
    return {"success": True, "message": "Book added to reading list", "data": data}


@router.delete("/{user_id}/reading-list/{book_id}")
async def remove_from_reading_list(
    user_id: str,
    book_id: str,
    user: CurrentUser = Depends(protect),
    user_service: UserService = Depends(get_user_service)
):
    await user_service.remove_from_reading_list(user_id, book_id, user)
    return {"success": True, "message": "Book removed from reading list"}
