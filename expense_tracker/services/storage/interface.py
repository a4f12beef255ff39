"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep expenses in a local file when nobody is logged in
2. Keep them in a remote per-user backend after login
3. Use in-memory fakes for testing
4. Keep the Record Store decoupled from where data lives

The backend is chosen ONCE when a session starts. Nothing downstream
checks "is somebody logged in" per call.

Errors are raised as StorageError subclasses. The Record Store turns
them into failed results; it never retries.
"""

from abc import ABC, abstractmethod
from typing import Any

from expense_tracker.models.expense import ExpenseRecord, StoreSnapshot


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (local file, Google Sheets, a database)
    must implement these methods.
    """

    #: Short name used in logs ("local", "google_sheets", ...)
    kind: str = "abstract"

    @abstractmethod
    async def fetch_all(self, user_id: str) -> StoreSnapshot:
        """
        Read every expense plus the budget and income for a user.

        Args:
            user_id: Identity the data is scoped to

        Returns:
            A snapshot of the user's records and scalars

        Raises:
            ConnectionError: If the backend cannot be reached
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(self, record: ExpenseRecord) -> ExpenseRecord:
        """
        Persist a new expense.

        Returns:
            The record as stored (the backend may normalise fields)

        Raises:
            DuplicateError: If the id is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, expense_id: str, fields: dict[str, Any]) -> ExpenseRecord:
        """
        Replace some fields of an existing expense.

        Args:
            expense_id: The expense to change
            fields: Field name -> new value (snake_case model field names)

        Returns:
            The updated record as stored

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, expense_id: str) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a record was deleted, False if there was nothing to delete

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def set_budget(self, amount: float) -> bool:
        """
        Replace the monthly budget.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def set_income(self, amount: float) -> bool:
        """
        Replace the monthly income.

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class StoreUnavailable(ConnectionError):
    """No backend could be reached while loading the Record Store."""
    pass
