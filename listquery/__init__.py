"""Declarative filtering, sorting and pagination for SQLAlchemy list endpoints."""

__version__ = "0.1.0"
