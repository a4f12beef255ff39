"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote backend for logged-in users because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Two worksheets act as tables:
- Expenses: one row per expense, keyed by id and scoped by user_id
- Users: one row per user holding monthly_budget and monthly_income

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: a failed write may leave a partial row update, which
  is why the Record Store never applies a change before we return
- Limited query capabilities (we filter in Python)

Only the connection handshake is retried. Reads and writes fail once and
the error is surfaced to the caller.
"""

from datetime import datetime
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.expense import ExpenseRecord, StoreSnapshot, UserContext
from expense_tracker.services.storage.interface import (
    ConnectionError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "name",
    "category",
    "recurrence",
    "amount",
    "due_date",
    "notes",
    "created_at",
]

# Column mappings for Users sheet
USER_COLUMNS = [
    "user_id",
    "username",
    "monthly_budget",
    "monthly_income",
]

BUDGET_COLUMN = USER_COLUMNS.index("monthly_budget") + 1
INCOME_COLUMN = USER_COLUMNS.index("monthly_income") + 1


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(
            self._settings.users_sheet_name, USER_COLUMNS
        )


def _safe_float(value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number > 0 else 0.0


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Scoped to one user: every row read or written carries that user's id.
    """

    kind = "google_sheets"

    def __init__(
        self,
        user: UserContext,
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._user = user
        self._client = client or GoogleSheetsClient()

    @property
    def user(self) -> UserContext:
        return self._user

    def _record_to_row(self, record: ExpenseRecord) -> list:
        """Convert an ExpenseRecord to a spreadsheet row."""
        return [
            record.id,
            self._user.user_id,
            record.name,
            record.category.value,
            record.recurrence.value,
            str(record.amount),
            record.due_date or "",
            record.notes or "",
            record.created_at.isoformat(),
        ]

    def _row_to_record(self, row: list) -> ExpenseRecord:
        """Convert a spreadsheet row to an ExpenseRecord."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        data = {
            "id": safe_get(0),
            "name": safe_get(2),
            "category": safe_get(3),
            "recurrence": safe_get(4),
            "amount": safe_get(5),
            "due_date": safe_get(6) or None,
            "notes": safe_get(7),
        }
        created_at = safe_get(8)
        if created_at:
            data["created_at"] = datetime.fromisoformat(created_at)
        return ExpenseRecord.model_validate(data)

    def _find_row(self, rows: list, expense_id: str) -> Optional[int]:
        """1-based sheet row number of this user's expense, or None."""
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if len(row) > 1 and row[0] == str(expense_id) and row[1] == self._user.user_id:
                return idx
        return None

    def _find_user_row(self, rows: list, user_id: str) -> Optional[int]:
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == user_id:
                return idx
        return None

    async def fetch_all(self, user_id: str) -> StoreSnapshot:
        """Read this user's expenses and scalars."""
        try:
            expense_rows = self._client.get_expenses_sheet().get_all_values()[1:]
            user_rows = self._client.get_users_sheet().get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load expenses: {e}")

        records = []
        for row in expense_rows:
            if len(row) < 2 or not row[0] or row[1] != user_id:
                continue
            try:
                records.append(self._row_to_record(row))
            except (ValueError, PydanticValidationError) as e:
                logger.warning("remote_expense_row_skipped", expense_id=row[0], error=str(e))

        budget = income = 0.0
        user_row = self._find_user_row(user_rows, user_id)
        if user_row is not None:
            row = user_rows[user_row - 1]
            budget = _safe_float(row[BUDGET_COLUMN - 1]) if len(row) >= BUDGET_COLUMN else 0.0
            income = _safe_float(row[INCOME_COLUMN - 1]) if len(row) >= INCOME_COLUMN else 0.0

        return StoreSnapshot(
            records=records,
            monthly_budget=budget,
            monthly_income=income,
        )

    async def insert(self, record: ExpenseRecord) -> ExpenseRecord:
        """Append a new expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add expense: {e}")

    async def update(self, expense_id: str, fields: dict[str, Any]) -> ExpenseRecord:
        """Rewrite an existing expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_row(all_rows, expense_id)
            if idx is None:
                raise NotFoundError(f"Expense not found: {expense_id}")

            current = self._row_to_record(all_rows[idx - 1])
            changes = {k: v for k, v in fields.items() if k != "id"}
            updated = ExpenseRecord.model_validate({**current.model_dump(), **changes})

            sheet.update(
                range_name=f"A{idx}",
                values=[self._record_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete(self, expense_id: str) -> bool:
        """Delete an expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet.get_all_values(), expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def _set_scalar(self, column: int, amount: float) -> bool:
        try:
            sheet = self._client.get_users_sheet()
            idx = self._find_user_row(sheet.get_all_values(), self._user.user_id)
            if idx is None:
                row = [self._user.user_id, self._user.username or "", "0", "0"]
                row[column - 1] = str(amount)
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update_cell(idx, column, str(amount))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update user settings: {e}")

    async def set_budget(self, amount: float) -> bool:
        return await self._set_scalar(BUDGET_COLUMN, amount)

    async def set_income(self, amount: float) -> bool:
        return await self._set_scalar(INCOME_COLUMN, amount)
