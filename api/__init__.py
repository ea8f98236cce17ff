"""
FastAPI RESTful API for the BookNook book catalogue.

This module provides a REST API for:
- User registration, login and token-based authentication
- Book catalogue browsing, search and admin management
- Book reviews with aggregate ratings
- User profiles and reading lists
"""
