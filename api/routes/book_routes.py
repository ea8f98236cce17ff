"""
Book catalogue endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from api.auth import authorize
from api.dependencies import get_book_service
from api.models import BookCreate, BookUpdate, CurrentUser
from services.book_service import BookService

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("")
async def get_books(
    request: Request,
    select: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    book_service: BookService = Depends(get_book_service)
):
    """
    List books with filtering, search, sorting and pagination.

    - **select**: Comma-separated fields to return
    - **sort**: Comma-separated sort fields, prefix with `-` for descending (default `-createdAt`)
    - **page** / **limit**: Pagination (defaults 1 / 10)
    - **search**: Case-insensitive match on title, author or genre
    - any other field filters, e.g. `genre=SciFi` or `rating[gte]=4`
    """
    data = await book_service.list_books(
        request.query_params.multi_items(),
        select=select,
        sort=sort,
        page=page,
        limit=limit,
        search=search
    )
    return {"success": True, "data": data}


@router.get("/my-books")
async def get_my_books(
    user: CurrentUser = Depends(authorize("admin")),
    book_service: BookService = Depends(get_book_service)
):
    """Books owned by the calling admin."""
    books = await book_service.list_my_books(user)
    return {"success": True, "count": len(books), "data": books}


@router.get("/{book_id}")
async def get_book(book_id: str, book_service: BookService = Depends(get_book_service)):
    """A single book with its reviews."""
    data = await book_service.get_book(book_id)
    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreate,
    user: CurrentUser = Depends(authorize("admin")),
    book_service: BookService = Depends(get_book_service)
):
    data = await book_service.create_book(payload, user)
    return {"success": True, "message": "Book added successfully", "data": data}


@router.put("/{book_id}")
async def update_book(
    book_id: str,
    payload: BookUpdate,
    user: CurrentUser = Depends(authorize("admin")),
    book_service: BookService = Depends(get_book_service)
):
    data = await book_service.update_book(book_id, payload)
    return {"success": True, "message": "Book updated successfully", "data": data}


@router.delete("/{book_id}")
async def delete_book(
    book_id: str,
    user: CurrentUser = Depends(authorize("admin")),
    book_service: BookService = Depends(get_book_service)
):
    """Delete a book owned by the caller, with all of its reviews."""
    await book_service.delete_book(book_id, user)
    return {"success": True, "message": "Book deleted successfully", "data": {}}
