"""
Domain services for the BookNook API.

This package contains:
- Authentication and token issuing
- Book catalogue operations
- Reviews and rating aggregation
- User profiles and reading lists
"""

__version__ = "1.0.0"
