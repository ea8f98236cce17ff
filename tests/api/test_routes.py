"""
Tests for the FastAPI application and its routes.
"""

from unittest.mock import patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api import dependencies
from api.main import app

API = "/api/v1"


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def api_db(mock_db):
    """Install the mock database service for the request dependencies."""
    with patch('api.dependencies.db_service', mock_db):
        yield mock_db


def auth_header(user_doc):
    token = dependencies.token_manager.create_token(str(user_doc["_id"]))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def as_admin(api_db, admin_doc):
    """Authenticate requests as the admin who owns the sample book."""
    admin_doc.pop("password")
    api_db.get_user_by_id.return_value = admin_doc
    return auth_header(admin_doc)


@pytest.fixture
def as_user(api_db, user_doc):
    """Authenticate requests as a regular user."""
    user_doc.pop("password")
    api_db.get_user_by_id.return_value = user_doc
    return auth_header(user_doc)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "BookNook API is running", "apiVersion": "v1"}


def test_health_check_without_database(client):
    """Health reports degraded when the database is not connected."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database_status"] == "unavailable"
    assert "timestamp" in data


def test_health_check_with_database(client, api_db):
    api_db.health_check.return_value = {"status": "healthy"}
    response = client.get("/health")
    assert response.json()["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client):
    response = client.get(f"{API}/nothing-here")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_database_unavailable(client):
    response = client.get(f"{API}/books")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Database service not available"}


class TestAuthRoutes:
    """Test cases for /auth."""

    def test_register(self, client, api_db):
        def insert(doc):
            doc["_id"] = ObjectId()
            return doc

        api_db.create_user.side_effect = insert
        response = client.post(f"{API}/auth/register", json={
            "username": "alice",
            "email": "alice@x.com",
            "password": "pw1234",
            "name": "Alice",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        assert body["data"]["role"] == "user"
        assert body["data"]["token"]
        assert body["data"]["refreshToken"]

    def test_register_validation_error(self, client, api_db):
        response = client.post(f"{API}/auth/register", json={
            "username": "alice",
            "email": "nope",
            "password": "pw",
            "name": "Alice",
        })

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "email" in body["error"]
        api_db.create_user.assert_not_awaited()

    def test_login(self, client, api_db, user_doc):
        api_db.get_user_by_email.return_value = user_doc

        response = client.post(f"{API}/auth/login", json={"email": "alice@x.com", "password": "pw1234"})

        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert response.json()["data"]["userId"] == str(user_doc["_id"])

    def test_login_invalid_credentials(self, client, api_db, user_doc):
        api_db.get_user_by_email.return_value = user_doc

        response = client.post(f"{API}/auth/login", json={"email": "alice@x.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid credentials"}

    def test_login_missing_fields(self, client, api_db):
        response = client.post(f"{API}/auth/login", json={"email": "alice@x.com"})
        assert response.status_code == 400

    def test_me(self, client, as_user, user_doc):
        response = client.get(f"{API}/auth/me", headers=as_user)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == str(user_doc["_id"])
        assert "password" not in data

    def test_me_without_token(self, client, api_db):
        response = client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authorized to access this route"}

    def test_me_with_bad_token(self, client, api_db):
        response = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_logout(self, client, as_user):
        response = client.get(f"{API}/auth/logout", headers=as_user)
        assert response.json() == {"success": True, "message": "User logged out successfully", "data": {}}


class TestBookRoutes:
    """Test cases for /books."""

    def test_list_is_public(self, client, api_db, book_doc):
        api_db.count_books.return_value = 1
        api_db.find_books.return_value = [book_doc]

        response = client.get(f"{API}/books?genre=SciFi&rating[gte]=4&sort=-rating&limit=5")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["books"][0]["title"] == "Dune"
        assert data["pagination"]["totalBooks"] == 1
        assert data["pagination"]["limit"] == 5
        query = api_db.find_books.await_args.args[0]
        assert query == {"genre": "SciFi", "rating": {"$gte": 4}}

    def test_list_rejects_operator_injection(self, client, api_db):
        response = client.get(f"{API}/books?rating[where]=1")
        assert response.status_code == 400
        api_db.find_books.assert_not_awaited()

    def test_get_book(self, client, api_db, book_doc):
        api_db.get_book.return_value = book_doc
        api_db.find_reviews.return_value = []

        response = client.get(f"{API}/books/{book_doc['_id']}")

        assert response.status_code == 200
        assert response.json()["data"]["reviews"] == []

    def test_get_book_malformed_id(self, client, api_db):
        response = client.get(f"{API}/books/not-an-id")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_create_requires_token(self, client, api_db):
        response = client.post(f"{API}/books", json={"title": "Dune"})
        assert response.status_code == 401

    def test_create_requires_admin(self, client, as_user):
        response = client.post(f"{API}/books", headers=as_user, json={
            "title": "Dune",
            "description": "d",
            "coverImage": "c",
            "genre": "g",
            "publishedDate": "1965",
        })
        assert response.status_code == 403
        assert response.json()["error"] == "User role user is not authorized to access this route"

    def test_create_as_admin(self, client, api_db, as_admin, admin_doc):
        def insert(doc):
            doc["_id"] = ObjectId()
            doc.setdefault("rating", 0)
            doc.setdefault("reviewCount", 0)
            return doc

        api_db.create_book.side_effect = insert
        response = client.post(f"{API}/books", headers=as_admin, json={
            "title": "Dune",
            "description": "Desert planet politics",
            "coverImage": "https://example.com/dune.jpg",
            "genre": "SciFi",
            "publishedDate": "1965",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Book added successfully"
        assert body["data"]["authorId"] == str(admin_doc["_id"])
        assert body["data"]["author"] == "frank"

    def test_create_missing_fields(self, client, as_admin):
        response = client.post(f"{API}/books", headers=as_admin, json={"title": "Dune"})
        assert response.status_code == 400

    def test_my_books(self, client, api_db, as_admin, book_doc):
        api_db.find_books.return_value = [book_doc]

        response = client.get(f"{API}/books/my-books", headers=as_admin)

        assert response.json()["count"] == 1

    def test_delete_own_book(self, client, api_db, as_admin, book_doc):
        api_db.get_book.return_value = book_doc
        api_db.delete_reviews_for_book.return_value = 0
        api_db.delete_book.return_value = True

        response = client.delete(f"{API}/books/{book_doc['_id']}", headers=as_admin)

        assert response.json() == {"success": True, "message": "Book deleted successfully", "data": {}}


class TestReviewRoutes:
    """Test cases for /reviews."""

    def test_list_requires_book_id(self, client, api_db):
        response = client.get(f"{API}/reviews")
        assert response.status_code == 400
        assert response.json()["error"] == "Please provide a book ID"

    def test_add_review(self, client, api_db, as_user, book_doc):
        def insert(doc):
            doc["_id"] = ObjectId()
            return doc

        api_db.get_book.return_value = book_doc
        api_db.find_review.return_value = None
        api_db.create_review.side_effect = insert
        api_db.aggregate_review_stats.return_value = {"averageRating": 5.0, "reviewCount": 1}

        response = client.post(
            f"{API}/reviews",
            headers=as_user,
            json={"bookId": str(book_doc["_id"]), "rating": 5, "comment": "Great"}
        )

        assert response.status_code == 201
        assert response.json()["message"] == "Review submitted successfully"
        api_db.update_book.assert_awaited_once_with(book_doc["_id"], {"rating": 5.0, "reviewCount": 1})

    def test_rating_out_of_range(self, client, as_user, book_doc):
        response = client.post(
            f"{API}/reviews",
            headers=as_user,
            json={"bookId": str(book_doc["_id"]), "rating": 9, "comment": "Great"}
        )
        assert response.status_code == 400

    def test_delete_someone_elses_review(self, client, api_db, as_admin, review_doc):
        """Admins may moderate any review."""
        api_db.get_review.return_value = review_doc
        api_db.delete_review.return_value = True

        response = client.delete(f"{API}/reviews/{review_doc['_id']}", headers=as_admin)

        assert response.status_code == 200
        assert response.json()["message"] == "Review deleted successfully"


class TestUserRoutes:
    """Test cases for /users."""

    def test_profile_of_other_user_refused(self, client, as_user, admin_doc):
        response = client.get(f"{API}/users/{admin_doc['_id']}", headers=as_user)
        assert response.status_code == 401

    def test_update_profile(self, client, api_db, as_user, user_doc):
        api_db.update_user.return_value = dict(user_doc, bio="Reader")

        response = client.put(f"{API}/users/{user_doc['_id']}", headers=as_user, json={"bio": "Reader"})

        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully"
        assert response.json()["data"]["bio"] == "Reader"

    def test_add_to_reading_list(self, client, api_db, as_user, user_doc, book_doc):
        api_db.get_book.return_value = book_doc
        api_db.push_reading_list_entry.return_value = True

        response = client.post(
            f"{API}/users/{user_doc['_id']}/reading-list",
            headers=as_user,
            json={"bookId": str(book_doc["_id"])}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Book added to reading list"
        assert response.json()["data"]["title"] == "Dune"

    def test_remove_missing_entry(self, client, as_user, user_doc):
        response = client.delete(f"{API}/users/{user_doc['_id']}/reading-list/{ObjectId()}", headers=as_user)
        assert response.status_code == 404
        assert response.json()["error"] == "Book not found in reading list"
