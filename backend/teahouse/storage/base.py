"""
Abstract ledger store interface.

The core modules only need sessions and atomic transactions from the store;
row locking is requested per query with ``with_for_update()``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session


class Storage(ABC):
    """Abstract base class for ledger store implementations."""

    @abstractmethod
    def session(self) -> Session:
        """Return a new session for reads (caller must close)."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Context manager yielding a session inside one transaction.

        Commits on normal exit; any exception rolls back every write made
        in the block and is re-raised.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release connections."""
        ...
