"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from api.database import APIDatabaseService
from api.models import CurrentUser, UserRole
from services.security import TokenManager, hash_password


@pytest.fixture
def mock_db():
    """Create a mock database service for testing."""
    db = AsyncMock(spec=APIDatabaseService)
    db.get_users_by_ids.return_value = {}
    db.get_books_by_ids.return_value = {}
    db.find_user_conflict.return_value = None
    db.aggregate_review_stats.return_value = None
    return db


@pytest.fixture
def token_manager():
    return TokenManager(secret_key="test-secret", algorithm="HS256", expire_minutes=60)


@pytest.fixture
def admin_id():
    return ObjectId()


@pytest.fixture
def other_admin_id():
    return ObjectId()


@pytest.fixture
def user_id():
    return ObjectId()


@pytest.fixture
def book_id():
    return ObjectId()


@pytest.fixture
def admin_doc(admin_id):
    """Stored admin user document."""
    return {
        "_id": admin_id,
        "username": "frank",
        "email": "frank@x.com",
        "password": hash_password("secret1"),
        "name": "Frank Herbert",
        "role": "admin",
        "preferences": {},
        "readingList": [],
        "createdAt": datetime(2024, 1, 1),
    }


@pytest.fixture
def user_doc(user_id):
    """Stored regular user document."""
    return {
        "_id": user_id,
        "username": "alice",
        "email": "alice@x.com",
        "password": hash_password("pw1234"),
        "name": "Alice",
        "bio": None,
        "avatar": None,
        "role": "user",
        "preferences": {"theme": "dark"},
        "readingList": [],
        "createdAt": datetime(2024, 1, 2),
    }


@pytest.fixture
def book_doc(book_id, admin_id):
    """Stored book document owned by the admin."""
    return {
        "_id": book_id,
        "title": "Dune",
        "authorId": admin_id,
        "author": "frank",
        "description": "Desert planet politics",
        "coverImage": "https://example.com/dune.jpg",
        "genre": "SciFi",
        "publishedDate": "1965-08-01",
        "featured": False,
        "rating": 0,
        "reviewCount": 0,
        "createdAt": datetime(2024, 1, 3),
        "updatedAt": datetime(2024, 1, 3),
    }


@pytest.fixture
def review_doc(book_id, user_id):
    """Stored review written by the regular user."""
    return {
        "_id": ObjectId(),
        "bookId": book_id,
        "userId": user_id,
        "rating": 5,
        "comment": "Spice must flow",
        "createdAt": datetime(2024, 1, 4),
        "updatedAt": datetime(2024, 1, 4),
    }


@pytest.fixture
def admin_user(admin_id):
    return CurrentUser(id=str(admin_id), username="frank", name="Frank Herbert", role=UserRole.ADMIN)


@pytest.fixture
def other_admin(other_admin_id):
    return CurrentUser(id=str(other_admin_id), username="ursula", name="Ursula", role=UserRole.ADMIN)


@pytest.fixture
def regular_user(user_id):
    return CurrentUser(id=str(user_id), username="alice", name="Alice", role=UserRole.USER)
