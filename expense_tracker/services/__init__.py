"""Services package."""

from expense_tracker.services.storage import (
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    LocalJSONStorage,
    NotFoundError,
    StorageError,
    StoreUnavailable,
)

__all__ = [
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "LocalJSONStorage",
    "NotFoundError",
    "StorageError",
    "StoreUnavailable",
]
