"""
Routers for each API resource, mounted under the API prefix.
"""

from api.routes.auth_routes import router as auth_router
from api.routes.book_routes import router as book_router
from api.routes.review_routes import router as review_router
from api.routes.user_routes import router as user_router

__all__ = ["auth_router", "book_router", "review_router", "user_router"]
