"""
Backend package for the structured-data CRUD service.

This package provides a FastAPI application serving HTML pages for admins,
members, users and message records, backed by a storage model chosen from
configuration (in-memory or Cloud SQL / any SQLAlchemy database).
"""
