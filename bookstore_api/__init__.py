"""FastAPI service for the bookstore admin dashboard.

This package provides REST API endpoints for authentication, catalog
management, purchase tracking and sales analytics over MongoDB.
"""

__version__ = "1.0.0"
