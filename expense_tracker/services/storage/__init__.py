"""
Storage Services Package

Provides the abstract storage interface and its two implementations:
a local JSON document (nobody logged in) and Google Sheets (logged in).
"""

from expense_tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    StoreUnavailable,
)
from expense_tracker.services.storage.local import LocalJSONStorage
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreUnavailable",
    # Implementations
    "LocalJSONStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
]
