"""Ledger store for the teahouse backend."""

from .base import Storage
from .sqlalchemy_adapter import SQLAlchemyStorage

__all__ = ["Storage", "SQLAlchemyStorage"]
