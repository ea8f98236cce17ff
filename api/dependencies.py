"""
Dependency providers for route handlers.
"""

from typing import Optional

from fastapi import Depends

from api.config import config
from api.database import APIDatabaseService
from services.auth_service import AuthService
from services.book_service import BookService
from services.exceptions import InternalError
from services.review_service import ReviewService
from services.security import TokenManager
from services.user_service import UserService

# Set by the application lifespan once the database is reachable
db_service: Optional[APIDatabaseService] = None

token_manager = TokenManager(
    secret_key=config.secret_key,
    algorithm=config.algorithm,
    expire_minutes=config.access_token_expire_minutes
)


def get_db_service() -> APIDatabaseService:
    if db_service is None:
        raise InternalError("Database service not available")
    return db_service


def get_token_manager() -> TokenManager:
    return token_manager


def get_auth_service(
    db: APIDatabaseService = Depends(get_db_service),
    tokens: TokenManager = Depends(get_token_manager)
) -> AuthService:
    return AuthService(db, tokens)


def get_book_service(db: APIDatabaseService = Depends(get_db_service)) -> BookService:
    return BookService(db, config.default_page_size, config.max_page_size)


def get_review_service(db: APIDatabaseService = Depends(get_db_service)) -> ReviewService:
    return ReviewService(db, config.default_page_size, config.max_page_size)


def get_user_service(db: APIDatabaseService = Depends(get_db_service)) -> UserService:
    return UserService(db)
