"""
Tests for the Record Store.

The store must never show a change the backend did not confirm.
"""

import pytest

from expense_tracker.models.expense import ErrorType
from expense_tracker.services.storage import StoreUnavailable
from expense_tracker.store import RecordStore, normalise_changes

from tests.conftest import FakeStorage, make_record


@pytest.fixture
def rent():
    return make_record(name="Rent", amount=950)


@pytest.fixture
def storage(rent):
    return FakeStorage([rent], budget=500, income=2000)


@pytest.fixture
def store(storage):
    return RecordStore(storage)


class TestLoad:
    """Tests for loading from the backend."""

    @pytest.mark.asyncio
    async def test_load_replaces_state(self, store, rent):
        snapshot = await store.load("local")
        assert [r.id for r in snapshot.records] == [rent.id]
        assert store.monthly_budget == 500
        assert store.monthly_income == 2000
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_state(self, store, storage, rent):
        await store.load("local")
        storage.failing.add("fetch_all")
        with pytest.raises(StoreUnavailable):
            await store.load("local")
        assert store.get(rent.id) == rent
        assert store.monthly_budget == 500

    @pytest.mark.asyncio
    async def test_unreachable_backend_raises_unavailable(self, store, storage):
        storage.unreachable = True
        with pytest.raises(StoreUnavailable):
            await store.load("local")


class TestAdd:
    """Tests for adding records."""

    @pytest.mark.asyncio
    async def test_add_appends_after_backend_confirms(self, store, storage):
        await store.load("local")
        gym = make_record(name="Gym", category="Health", amount=30)
        result = await store.add(gym)
        assert result.success
        assert result.record == gym
        assert store.get(gym.id) == gym
        assert gym.id in storage.records

    @pytest.mark.asyncio
    async def test_failed_add_leaves_collection_unchanged(self, store, storage):
        await store.load("local")
        storage.failing.add("insert")
        result = await store.add(make_record(name="Gym"))
        assert not result.success
        assert result.error_type == ErrorType.STORAGE
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store, storage, rent):
        await store.load("local")
        result = await store.add(rent)
        assert not result.success
        assert "insert" not in storage.calls


class TestUpdate:
    """Tests for updating records."""

    @pytest.mark.asyncio
    async def test_update_replaces_fields_keeps_id(self, store, rent):
        await store.load("local")
        result = await store.update(rent.id, {"amount": 1000, "id": "other"})
        assert result.success
        updated = store.get(rent.id)
        assert updated.amount == 1000
        assert updated.name == "Rent"

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found_without_backend_call(self, store, storage):
        await store.load("local")
        result = await store.update("missing", {"amount": 5})
        assert result.not_found
        assert "update" not in storage.calls

    @pytest.mark.asyncio
    async def test_failed_update_keeps_old_value(self, store, storage, rent):
        await store.load("local")
        storage.failing.add("update")
        result = await store.update(rent.id, {"amount": 1000})
        assert not result.success
        assert result.error_type == ErrorType.STORAGE
        assert store.get(rent.id).amount == 950

    @pytest.mark.asyncio
    async def test_invalid_merge_rejected_before_backend(self, store, storage, rent):
        await store.load("local")
        result = await store.update(rent.id, {"amount": -3})
        assert result.error_type == ErrorType.VALIDATION
        assert "update" not in storage.calls
        assert store.get(rent.id).amount == 950

    @pytest.mark.asyncio
    async def test_camel_case_due_date_is_accepted(self, store, rent):
        await store.load("local")
        await store.update(rent.id, {"dueDate": "2025-08-01"})
        assert store.get(rent.id).due_date == "2025-08-01"


class TestRemove:
    """Tests for removing records."""

    @pytest.mark.asyncio
    async def test_remove(self, store, storage, rent):
        await store.load("local")
        result = await store.remove(rent.id)
        assert result.success
        assert store.get(rent.id) is None
        assert rent.id not in storage.records

    @pytest.mark.asyncio
    async def test_failed_remove_keeps_record(self, store, storage, rent):
        await store.load("local")
        storage.failing.add("delete")
        result = await store.remove(rent.id)
        assert not result.success
        assert store.get(rent.id) == rent

    @pytest.mark.asyncio
    async def test_remove_unknown_id(self, store, storage):
        await store.load("local")
        result = await store.remove("missing")
        assert result.not_found
        assert "delete" not in storage.calls

    @pytest.mark.asyncio
    async def test_record_already_gone_from_backend_is_dropped(self, store, storage, rent):
        await store.load("local")
        del storage.records[rent.id]
        result = await store.remove(rent.id)
        assert result.success
        assert len(store) == 0


class TestScalars:
    """Tests for budget and income."""

    @pytest.mark.asyncio
    async def test_set_budget(self, store, storage):
        result = await store.set_budget(750)
        assert result.success
        assert store.monthly_budget == 750
        assert storage.budget == 750

    @pytest.mark.asyncio
    async def test_failed_set_income_keeps_old_value(self, store, storage):
        await store.load("local")
        storage.failing.add("set_income")
        result = await store.set_income(9)
        assert not result.success
        assert store.monthly_income == 2000


class TestStoreHelpers:
    """Tests for snapshot, clear and change normalisation."""

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, store):
        await store.load("local")
        snapshot = store.snapshot()
        snapshot.records.clear()
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_clear_keeps_backend_data(self, store, storage):
        await store.load("local")
        store.clear()
        assert len(store) == 0
        assert len(storage.records) == 1

    def test_normalise_changes(self):
        changes = normalise_changes({"dueDate": "2025-01-01", "id": "x", "colour": "red", "name": "A"})
        assert changes == {"due_date": "2025-01-01", "name": "A"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
