"""
Expense Tracker Session

This module ties together all the components for one user session:
Record Store + Filter State + Query Engine + validation + audit.

DESIGN DECISION: The session is an explicit, owned context object.
There are no module-level singletons; the presentation layer holds
one session and passes it around.

The storage backend is chosen ONCE in create_session:
- a logged-in user (UserContext) -> Google Sheets
- nobody logged in              -> local JSON document
Switching backends means ending this session and creating a new one.

Every mutation goes:
    validate -> store (backend first, memory second) -> audit
and reports an OperationResult. Nothing here raises for bad input or a
refused write; the caller shows error_message to the user.
"""

from datetime import date
from typing import Any, Callable, Iterable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from expense_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from expense_tracker.config import AppSettings, Settings, get_settings
from expense_tracker.models.expense import (
    ErrorType,
    ExpenseInput,
    ExpenseRecord,
    OperationResult,
    UserContext,
)
from expense_tracker.models.filters import FilterState
from expense_tracker.queries import QueryEngine
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    LocalJSONStorage,
    StoreUnavailable,
)
from expense_tracker.store import RecordStore, normalise_changes
from expense_tracker.transfer import (
    ImportFormatError,
    build_export_table,
    export_records_to_json,
    parse_import,
)
from expense_tracker.validation import ExpenseValidator, ValidationError


LOCAL_USER_ID = "local"


class ImportSummary(BaseModel):
    """What happened to each entry of an import file."""

    success: bool
    imported: int = 0
    removed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    error_message: Optional[str] = None


class ExpenseTrackerSession:
    """
    One user session over one storage backend.

    Usage:
        session = create_session()
        await session.start()
        await session.add_expense({...})
        session.filters.set_predefined_date_range("current-month")
        session.queries.totals()
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        user: Optional[UserContext] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ExpenseValidator] = None,
        clock: Callable[[], date] = date.today,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app
        self._user = user
        self._store = RecordStore(storage)
        self._filters = FilterState(sort_by=self._settings.default_sort)
        self._queries = QueryEngine(self._store, self._filters, clock, self._settings)
        self._validator = validator or ExpenseValidator(self._settings)
        self._audit = audit_logger or AuditLogger()
        self._correlation_id = create_correlation_id()

    @property
    def user(self) -> Optional[UserContext]:
        return self._user

    @property
    def user_id(self) -> str:
        return self._user.user_id if self._user else LOCAL_USER_ID

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def queries(self) -> QueryEngine:
        return self._queries

    @property
    def correlation_id(self) -> UUID:
        return self._correlation_id

    @property
    def is_remote(self) -> bool:
        return self._user is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> OperationResult:
        """Load the user's data from the backend."""
        await self._audit.log_session_started(
            storage_kind=self._store.storage.kind,
            user_id=self._user.user_id if self._user else None,
            correlation_id=self._correlation_id,
        )
        try:
            snapshot = await self._store.load(self.user_id)
        except StoreUnavailable as e:
            await self._audit.log_load_failed(str(e), self._correlation_id)
            return OperationResult.failed(ErrorType.STORAGE, str(e))
        except Exception as e:
            await self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"storage": self._store.storage.kind},
                correlation_id=self._correlation_id,
            )
            raise

        await self._audit.log_expenses_loaded(len(snapshot.records), self._correlation_id)
        return OperationResult.ok()

    async def end(self) -> None:
        """Logout: forget the in-memory data and filters. Storage is untouched."""
        self._store.clear()
        self._filters.reset(self._settings.default_sort)
        await self._audit.log_session_ended(
            user_id=self._user.user_id if self._user else None,
            correlation_id=self._correlation_id,
        )

    # -------------------------------------------------------------------------
    # Expense mutations
    # -------------------------------------------------------------------------

    async def _validation_failed(self, error: ValidationError) -> OperationResult:
        await self._audit.log_validation_failed(
            [issue.model_dump() for issue in error.issues],
            self._correlation_id,
        )
        return OperationResult.failed(ErrorType.VALIDATION, str(error), error.issues)

    async def _report(
        self,
        operation: str,
        entity_id: Optional[str],
        result: OperationResult,
    ) -> OperationResult:
        """Audit a failed store result."""
        if result.not_found:
            await self._audit.log_not_found(operation, entity_id or "", self._correlation_id)
        elif not result.success:
            await self._audit.log_save_failed(
                operation, entity_id, result.error_message or "", self._correlation_id
            )
        return result

    async def add_expense(self, data: Union[ExpenseInput, dict]) -> OperationResult:
        """Validate form input and add it as a new expense."""
        try:
            record = self._validator.build_record(data)
        except ValidationError as e:
            return await self._validation_failed(e)

        result = await self._store.add(record)
        if result.success:
            await self._audit.log_expense_added(
                record.id, record.name, record.amount, self._correlation_id
            )
            return result
        return await self._report("add", record.id, result)

    async def edit_expense(self, expense_id: str, changes: Union[dict, Any]) -> OperationResult:
        """
        Change some fields of an expense.

        The edited expense is validated as a whole, the same way a new
        one is, before the store is asked to write it.
        """
        current = self._store.get(expense_id)
        if current is None:
            result = OperationResult.failed(
                ErrorType.NOT_FOUND, f"Expense not found: {expense_id}"
            )
            return await self._report("update", str(expense_id), result)

        fields = normalise_changes(changes)
        candidate = {
            "name": current.name,
            "category": current.category,
            "recurrence": current.recurrence,
            "amount": current.amount,
            "due_date": current.due_date,
            "notes": current.notes,
        }
        candidate.update({k: v for k, v in fields.items() if k != "created_at"})
        try:
            self._validator.build_record(candidate, expense_id=current.id)
        except ValidationError as e:
            return await self._validation_failed(e)

        result = await self._store.update(current.id, fields)
        if result.success:
            await self._audit.log_expense_updated(
                current.id, sorted(fields), self._correlation_id
            )
            return result
        return await self._report("update", current.id, result)

    async def delete_expense(self, expense_id: str) -> OperationResult:
        result = await self._store.remove(expense_id)
        if result.success:
            await self._audit.log_expense_deleted(str(expense_id), self._correlation_id)
            return result
        return await self._report("delete", str(expense_id), result)

    async def delete_expenses(self, expense_ids: Iterable[str]) -> list[OperationResult]:
        """Bulk delete. Each delete is awaited before the next one starts."""
        results = []
        for expense_id in expense_ids:
            results.append(await self.delete_expense(expense_id))
        return results

    # -------------------------------------------------------------------------
    # Budget & income
    # -------------------------------------------------------------------------

    async def set_budget(self, amount: Any) -> OperationResult:
        try:
            value = self._validator.validate_scalar("budget", amount)
        except ValidationError as e:
            return await self._validation_failed(e)

        result = await self._store.set_budget(value)
        if result.success:
            await self._audit.log_scalar_set("budget", value, self._correlation_id)
            return result
        return await self._report("set_budget", None, result)

    async def set_income(self, amount: Any) -> OperationResult:
        try:
            value = self._validator.validate_scalar("income", amount)
        except ValidationError as e:
            return await self._validation_failed(e)

        result = await self._store.set_income(value)
        if result.success:
            await self._audit.log_scalar_set("income", value, self._correlation_id)
            return result
        return await self._report("set_income", None, result)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    async def export_json(self) -> str:
        """Every stored expense (not just the filtered ones) as JSON."""
        records = self._store.records
        payload = export_records_to_json(records)
        await self._audit.log_data_exported(len(records), "json", self._correlation_id)
        return payload

    async def export_table(self) -> list[list[str]]:
        """Rows for a spreadsheet writer, with the current totals appended."""
        records = self._store.records
        totals = self._queries.totals()
        rows = build_export_table(records, totals.monthly, totals.yearly)
        await self._audit.log_data_exported(len(records), "table", self._correlation_id)
        return rows

    async def import_json(self, text: str, replace: bool = True) -> ImportSummary:
        """
        Load the valid entries of an export file as the expense collection.

        Legacy entries are migrated first and invalid entries are skipped.
        With replace=True (the default) every stored expense is deleted
        through the backend before the imported ones are added, so the
        collection ends up holding exactly the file's expenses. If any
        delete is refused, nothing is imported. With replace=False the
        imported expenses are added next to the existing ones.

        Entries the backend refuses to add are counted as failed.
        """
        try:
            parsed = parse_import(text)
        except ImportFormatError as e:
            await self._audit.log_import_failed(str(e), self._correlation_id)
            return ImportSummary(success=False, error_message=str(e))

        errors = list(parsed.errors)
        removed = 0
        if replace:
            refused = 0
            for existing in self._store.records:
                result = await self._store.remove(existing.id)
                if result.success:
                    removed += 1
                else:
                    refused += 1
                    errors.append(f"{existing.name}: {result.error_message}")

            if refused:
                message = "Could not clear existing expenses; nothing was imported"
                await self._audit.log_import_failed(message, self._correlation_id)
                return ImportSummary(
                    success=False,
                    removed=removed,
                    skipped=parsed.skipped,
                    errors=errors,
                    error_message=message,
                )

        imported = failed = 0
        for record in parsed.records:
            result = await self._store.add(record)
            if result.success:
                imported += 1
            else:
                failed += 1
                errors.append(f"{record.name}: {result.error_message}")

        await self._audit.log_data_imported(
            imported, parsed.skipped, failed, self._correlation_id
        )
        return ImportSummary(
            success=failed == 0,
            imported=imported,
            removed=removed,
            skipped=parsed.skipped,
            failed=failed,
            errors=errors,
        )

    def get(self, expense_id: str) -> Optional[ExpenseRecord]:
        return self._store.get(expense_id)


def create_storage(
    user: Optional[UserContext],
    settings: Optional[Settings] = None,
) -> ExpenseStorageInterface:
    """
    Pick the backend for a session.

    Raises:
        StoreUnavailable: If a user is given but the remote backend
                          isn't configured
    """
    settings = settings or get_settings()
    if user is None:
        return LocalJSONStorage(settings=settings.storage)

    try:
        client = GoogleSheetsClient(settings.google_sheets)
    except Exception as e:
        raise StoreUnavailable(f"Remote storage is not configured: {e}") from e
    return GoogleSheetsExpenseStorage(user, client)


def create_session(
    user: Optional[UserContext] = None,
    settings: Optional[Settings] = None,
    storage: Optional[ExpenseStorageInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
    clock: Callable[[], date] = date.today,
) -> ExpenseTrackerSession:
    """
    Factory function to create a session.

    Args:
        user: Logged-in user, or None for local-only use
        settings: Settings to use (defaults to the cached settings)
        storage: Explicit backend, bypassing the user-based choice
        audit_logger: Audit logger (defaults to local-only logging)
        clock: Source of "today" for date-relative queries

    Returns:
        A session that still needs start() to load data
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    if storage is None:
        storage = create_storage(user, settings)

    return ExpenseTrackerSession(
        storage=storage,
        user=user,
        audit_logger=audit_logger,
        clock=clock,
        settings=app_settings,
    )
