"""Record Store package."""

from expense_tracker.store.record_store import RecordStore, normalise_changes

__all__ = ["RecordStore", "normalise_changes"]
