"""
Registration, login and session endpoints.
"""

from fastapi import APIRouter, Depends, status

from api.auth import protect
from api.dependencies import get_auth_service, get_user_service
from api.models import CurrentUser, LoginRequest, RegisterRequest
from services.auth_service import AuthService
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Create an account and return access tokens."""
    data = await auth_service.register(payload)
    return {"success": True, "message": "User registered successfully", "data": data}


@router.post("/login")
async def login(payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Exchange email and password for access tokens."""
    data = await auth_service.login(payload)
    return {"success": True, "message": "Login successful", "data": data}


@router.get("/me")
async def get_me(
    user: CurrentUser = Depends(protect),
    user_service: UserService = Depends(get_user_service)
):
    """Profile of the authenticated user."""
    data = await user_service.get_profile(user.id, user)
    return {"success": True, "data": data}


@router.get("/logout")
async def logout(
    user: CurrentUser = Depends(protect),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Acknowledge a logout; tokens simply expire."""
    data = await auth_service.logout()
    return {"success": True, "message": "User logged out successfully", "data": data}
