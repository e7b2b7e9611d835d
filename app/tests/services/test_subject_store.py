import asyncio
import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from app.core.exceptions import ServiceUnavailable, SubjectNotFound
from app.schemas.subject import SubjectRead
from app.services.subject_store import SubjectStore

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _row(id: int, **fields) -> SubjectRead:
    data = {"id": id, "title": f"Subject {id}", "created_at": BASE_TIME + timedelta(minutes=id)}
    data.update(fields)
    return SubjectRead(**data)


class _FakeSubjectClient:
    """In-memory stand-in for ApiClient's subject endpoints."""

    def __init__(self, rows: Optional[List[SubjectRead]] = None):
        self.rows = list(rows or [])
        self.calls: List[str] = []
        self.fail_next_list: Optional[Exception] = None
        self.list_gates: List[asyncio.Event] = []
        self.seen_by_list: List[List[int]] = []
        self.store: Optional[SubjectStore] = None
        self.active_writes: Dict[int, int] = {}
        self.max_parallel_writes = 0

    async def list_subjects(self, filters=None, owner_id=None) -> List[SubjectRead]:
        self.calls.append("list")
        if self.store is not None:
            self.seen_by_list.append([s.id for s in self.store.subjects])
        if self.fail_next_list is not None:
            error, self.fail_next_list = self.fail_next_list, None
            raise error
        snapshot = list(self.rows)
        if self.list_gates:
            await self.list_gates.pop(0).wait()
        return snapshot

    async def _write(self, subject_id: int) -> None:
        self.active_writes[subject_id] = self.active_writes.get(subject_id, 0) + 1
        self.max_parallel_writes = max(self.max_parallel_writes, sum(self.active_writes.values()))
        await asyncio.sleep(0.01)
        self.active_writes[subject_id] -= 1

    async def create_subject(self, data) -> SubjectRead:
        self.calls.append("create")
        row = _row(max((r.id for r in self.rows), default=0) + 1, **data)
        self.rows.insert(0, row)
        return row

    async def update_subject(self, subject_id: int, patch) -> SubjectRead:
        self.calls.append("update")
        await self._write(subject_id)
        for i, row in enumerate(self.rows):
            if row.id == subject_id:
                self.rows[i] = row.model_copy(update=patch)
                return self.rows[i]
        raise SubjectNotFound("Updating subject failed: Subject not found")

    async def delete_subject(self, subject_id: int) -> None:
        self.calls.append("delete")
        self.rows = [r for r in self.rows if r.id != subject_id]


@pytest.fixture
def fake_client() -> _FakeSubjectClient:
    return _FakeSubjectClient([
        _row(1, title="AI Lab", status="launched", deadline_date=date.today() + timedelta(days=2)),
        _row(2, title="ML Lab", status="preparing"),
        _row(3, title="Old survey", status="finished"),
    ])


@pytest.fixture
def store(fake_client: _FakeSubjectClient) -> SubjectStore:
    store = SubjectStore(fake_client)
    fake_client.store = store
    return store


@pytest.mark.asyncio
async def test_load_replaces_collection(store: SubjectStore, fake_client: _FakeSubjectClient):
    assert store.subjects == []
    loaded = await store.load()
    assert [s.id for s in loaded] == [1, 2, 3]
    assert store.is_loading is False

@pytest.mark.asyncio
async def test_refresh_stats(store: SubjectStore):
    stats = await store.refresh_stats()
    assert stats.model_dump() == {"total": 3, "preparing": 1, "launched": 1, "finished": 1, "due_soon": 1}

@pytest.mark.asyncio
async def test_load_failure_keeps_previous_collection(store: SubjectStore, fake_client: _FakeSubjectClient):
    await store.load()
    fake_client.fail_next_list = ServiceUnavailable("Fetching subjects failed: the service is unreachable")
    with pytest.raises(ServiceUnavailable):
        await store.load()
    assert [s.id for s in store.subjects] == [1, 2, 3]
    assert store.is_loading is False

@pytest.mark.asyncio
async def test_stale_load_is_discarded(store: SubjectStore, fake_client: _FakeSubjectClient):
    gate = asyncio.Event()
    fake_client.list_gates.append(gate)
    slow = asyncio.create_task(store.load())
    await asyncio.sleep(0)

    fake_client.rows.insert(0, _row(4, title="Newest"))
    await store.load()
    assert [s.id for s in store.subjects] == [4, 1, 2, 3]

    gate.set()
    await slow
    assert [s.id for s in store.subjects] == [4, 1, 2, 3]

@pytest.mark.asyncio
async def test_create_reloads_collection_and_stats(store: SubjectStore, fake_client: _FakeSubjectClient):
    created = await store.create({"title": "Fresh idea", "status": "launched"})
    assert created.id == 4
    assert [s.id for s in store.subjects].count(4) == 1
    assert store.stats.total == 4
    assert store.stats.launched == 2
    assert fake_client.calls == ["create", "list", "list"]
    assert store.is_loading is False

@pytest.mark.asyncio
async def test_update_reloads(store: SubjectStore):
    await store.load()
    updated = await store.update(2, {"status": "launched"})
    assert updated.status == "launched"
    assert store.get_subject_by_id(2).status == "launched"
    assert store.stats.launched == 2

@pytest.mark.asyncio
async def test_update_error_propagates_and_resets_loading(store: SubjectStore):
    with pytest.raises(SubjectNotFound):
        await store.update(99, {"title": "Ghost"})
    assert store.is_loading is False

@pytest.mark.asyncio
async def test_delete_removes_locally_before_reload(store: SubjectStore, fake_client: _FakeSubjectClient):
    await store.load()
    fake_client.seen_by_list.clear()
    await store.delete(2)
    assert all(2 not in ids for ids in fake_client.seen_by_list)
    assert store.get_subject_by_id(2) is None
    assert store.stats.total == 2

@pytest.mark.asyncio
async def test_writes_to_same_subject_are_serialized(store: SubjectStore, fake_client: _FakeSubjectClient):
    await asyncio.gather(
        store.update(1, {"title": "First"}),
        store.update(1, {"title": "Second"}),
    )
    assert fake_client.max_parallel_writes == 1
    assert store.get_subject_by_id(1).title == "Second"
    assert store._write_locks == {}

@pytest.mark.asyncio
async def test_writes_to_different_subjects_overlap(store: SubjectStore, fake_client: _FakeSubjectClient):
    await asyncio.gather(store.update(1, {"title": "One"}), store.update(2, {"title": "Two"}))
    assert fake_client.max_parallel_writes == 2

@pytest.mark.asyncio
async def test_filtered_view_follows_filters(store: SubjectStore, fake_client: _FakeSubjectClient):
    await store.load()
    store.set_filters(search="lab")
    assert [s.title for s in store.get_filtered_subjects()] == ["ML Lab", "AI Lab"]
    store.set_filters(status="launched")
    assert [s.title for s in store.get_filtered_subjects()] == ["AI Lab"]
    store.set_filters(search="", status="all", sort_by="title", sort_order="asc")
    assert [s.title for s in store.get_filtered_subjects()] == ["AI Lab", "ML Lab", "Old survey"]
    assert fake_client.calls == ["list"]

def test_set_filters_rejects_bad_input(store: SubjectStore):
    with pytest.raises(ValueError):
        store.set_filters(status="archived")
    with pytest.raises(ValueError):
        store.set_filters(colour="red")
    assert store.filters.status == "all"

def test_get_subject_by_id_on_empty_store(store: SubjectStore):
    assert store.get_subject_by_id(1) is None

@pytest.mark.asyncio
async def test_write_locks_are_released_after_writes(store: SubjectStore):
    await store.load()
    await store.update(1, {"title": "Renamed"})
    await store.delete(2)
    assert store._write_locks == {}

    with pytest.raises(SubjectNotFound):
        await store.update(42, {"title": "Ghost"})
    assert store._write_locks == {}
