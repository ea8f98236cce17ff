"""
Tests for request validation models.
"""

import pytest
from pydantic import ValidationError

from api.models import (
    BookCreate,
    BookUpdate,
    CurrentUser,
    LoginRequest,
    ReviewCreate,
    RegisterRequest,
    UserRole,
    UserUpdate,
)


class TestRegisterRequest:
    """Test cases for RegisterRequest."""

    def test_valid_registration(self):
        payload = RegisterRequest(
            username="  alice ",
            email="Alice@Example.COM",
            password="pw1234",
            name="Alice"
        )
        assert payload.username == "alice"
        assert payload.email == "alice@example.com"
        assert payload.resolved_role() == UserRole.USER

    def test_invalid_email(self):
        with pytest.raises(ValidationError, match="valid email"):
            RegisterRequest(username="alice", email="not-an-email", password="pw1234", name="Alice")

    @pytest.mark.parametrize("email", ["a@b..c", "a@-b.c", "a..b@c.d", "a@b.c."])
    def test_malformed_addresses_rejected(self, email):
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email=email, password="pw1234", name="Alice")

    def test_password_whitespace_kept(self):
        payload = RegisterRequest(username=" alice ", email="alice@x.com", password=" pw123 ", name="Alice")
        assert payload.username == "alice"
        assert payload.password == " pw123 "

    def test_empty_password(self):
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="alice@x.com", password="", name="Alice")

    def test_short_password_accepted(self):
        assert RegisterRequest(username="alice", email="alice@x.com", password="pw123", name="Alice").password == "pw123"

    def test_username_too_long(self):
        with pytest.raises(ValidationError):
            RegisterRequest(username="a" * 51, email="alice@x.com", password="pw1234", name="Alice")

    @pytest.mark.parametrize("requested, expected", [
        ("admin", UserRole.ADMIN),
        ("user", UserRole.USER),
        ("root", UserRole.USER),
        (None, UserRole.USER),
    ])
    def test_resolved_role(self, requested, expected):
        payload = RegisterRequest(
            username="alice", email="alice@x.com", password="pw1234", name="Alice", role=requested
        )
        assert payload.resolved_role() == expected


class TestBookModels:
    """Test cases for book payloads."""

    def test_camel_case_aliases(self):
        payload = BookCreate.model_validate({
            "title": "Dune",
            "description": "Desert planet politics",
            "coverImage": "https://example.com/dune.jpg",
            "genre": "SciFi",
            "publishedDate": "1965",
        })
        assert payload.cover_image == "https://example.com/dune.jpg"
        assert payload.featured is False
        assert payload.dict(by_alias=True)["publishedDate"] == "1965"

    def test_title_limit(self):
        with pytest.raises(ValidationError):
            BookCreate(
                title="x" * 101,
                description="d",
                cover_image="c",
                genre="g",
                published_date="p"
            )

    def test_missing_required_fields(self):
        with pytest.raises(ValidationError):
            BookCreate.model_validate({"title": "Dune"})

    def test_update_drops_derived_fields(self):
        payload = BookUpdate.model_validate({"title": "Dune Messiah", "rating": 5, "reviewCount": 99, "authorId": "x"})
        assert payload.dict(by_alias=True, exclude_unset=True) == {"title": "Dune Messiah"}


class TestReviewCreate:
    """Test cases for ReviewCreate."""

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, rating):
        with pytest.raises(ValidationError):
            ReviewCreate(book_id="abc", rating=rating, comment="meh")

    def test_accepts_camel_case(self):
        payload = ReviewCreate.model_validate({"bookId": "abc", "rating": 4, "comment": "Good"})
        assert payload.book_id == "abc"


class TestUserUpdate:
    """Test cases for UserUpdate."""

    def test_only_allow_listed_fields(self):
        payload = UserUpdate.model_validate({"bio": "Reader", "role": "admin", "password": "x"})
        assert payload.dict(exclude_unset=True) == {"bio": "Reader"}

    def test_bio_limit(self):
        with pytest.raises(ValidationError):
            UserUpdate(bio="x" * 501)

    def test_email_normalized(self):
        assert UserUpdate(email="New@X.com").email == "new@x.com"

    def test_malformed_email(self):
        with pytest.raises(ValidationError):
            UserUpdate(email="a..b@c.d")


def test_login_password_whitespace_kept():
    assert LoginRequest(email="alice@x.com", password=" pw123 ").password == " pw123 "


def test_current_user_is_admin():
    assert CurrentUser(id="1", username="frank", role="admin").is_admin
    assert not CurrentUser(id="2", username="alice").is_admin
