"""
Book rating aggregation.

A book's ``rating`` and ``reviewCount`` are derived from its reviews and are
recomputed from scratch after every change to the review set.
"""

import math
from typing import Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


def round_rating(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def summarize_ratings(stats: Optional[Dict]) -> Dict:
    """
    Turn the output of the review aggregation into book fields.

    Args:
        stats: ``{"averageRating": float, "reviewCount": int}`` or None when
            the book has no reviews

    Returns:
        Dictionary with ``rating`` and ``reviewCount`` ready to be written
    """
    if not stats or not stats.get("reviewCount"):
        return {"rating": 0, "reviewCount": 0}

    return {
        "rating": round_rating(stats["averageRating"]),
        "reviewCount": int(stats["reviewCount"]),
    }


async def refresh_book_rating(db, book_id) -> Dict:
    """
    Recompute and store the aggregate rating for a book.

    Args:
        db: APIDatabaseService instance
        book_id: ObjectId of the book

    Returns:
        The fields written to the book
    """
    stats = await db.aggregate_review_stats(book_id)
    summary = summarize_ratings(stats)
    await db.update_book(book_id, summary)
    logger.debug("Book rating refreshed", book_id=str(book_id), **summary)
    return summary
