#app/services/subject_store.py
"""
Client-side store of research subjects.

Holds the last fetched collection, the statistics derived from it and the
current filters. Writes go through the ApiClient and then reload both the
collection and the statistics before returning.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, List, Optional

from app.core.subject_metrics import compute_stats, filter_subjects
from app.schemas.subject import SubjectFilters, SubjectRead, SubjectStats
from app.services.api_client import ApiClient

logger = logging.getLogger("ResearchTracker.SubjectStore")


class SubjectStore:
    def __init__(self, client: ApiClient):
        self.client = client
        self.subjects: List[SubjectRead] = []
        self.stats = SubjectStats()
        self.filters = SubjectFilters()
        self._busy = 0
        self._load_seq = 0
        self._stats_seq = 0
        self._write_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}

    @property
    def is_loading(self) -> bool:
        return self._busy > 0

    @contextmanager
    def _loading(self):
        self._busy += 1
        try:
            yield
        finally:
            self._busy -= 1

    @asynccontextmanager
    async def _writing(self, subject_id: int):
        """Serialize writes per subject; the lock is dropped once nobody holds or awaits it."""
        lock = self._write_locks.setdefault(subject_id, asyncio.Lock())
        self._lock_users[subject_id] = self._lock_users.get(subject_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[subject_id] -= 1
            if not self._lock_users[subject_id]:
                del self._lock_users[subject_id]
                del self._write_locks[subject_id]

    async def load(self) -> List[SubjectRead]:
        """
        Replace the collection with a fresh fetch. A response that arrives
        after a newer load has started is discarded.
        """
        self._load_seq += 1
        seq = self._load_seq
        with self._loading():
            subjects = await self.client.list_subjects()
        if seq != self._load_seq:
            logger.debug(f"Discarding subject list from load #{seq}, #{self._load_seq} is newer")
            return self.subjects
        self.subjects = subjects
        logger.debug(f"Loaded {len(subjects)} subjects")
        return self.subjects

    async def refresh_stats(self) -> SubjectStats:
        self._stats_seq += 1
        seq = self._stats_seq
        with self._loading():
            subjects = await self.client.list_subjects()
        if seq == self._stats_seq:
            self.stats = compute_stats(subjects)
        return self.stats

    async def _reload(self) -> None:
        await asyncio.gather(self.load(), self.refresh_stats())

    async def create(self, data: Dict[str, Any]) -> SubjectRead:
        with self._loading():
            created = await self.client.create_subject(data)
            logger.info(f"Subject created: {created.id} ('{created.title}')")
            await self._reload()
        return created

    async def update(self, subject_id: int, patch: Dict[str, Any]) -> SubjectRead:
        async with self._writing(subject_id):
            with self._loading():
                updated = await self.client.update_subject(subject_id, patch)
                logger.info(f"Subject {subject_id} updated: {sorted(patch)}")
                await self._reload()
        return updated

    async def delete(self, subject_id: int) -> None:
        async with self._writing(subject_id):
            with self._loading():
                await self.client.delete_subject(subject_id)
                self.subjects = [s for s in self.subjects if s.id != subject_id]
                logger.info(f"Subject {subject_id} deleted")
                await self._reload()

    def set_filters(self, **patch: Any) -> SubjectFilters:
        """Merge patch into the current filters. Raises ValueError on bad keys or values."""
        self.filters = SubjectFilters(**{**self.filters.model_dump(), **patch})
        return self.filters

    def get_filtered_subjects(self) -> List[SubjectRead]:
        return filter_subjects(self.subjects, self.filters)

    def get_subject_by_id(self, subject_id: int) -> Optional[SubjectRead]:
        return next((s for s in self.subjects if s.id == subject_id), None)
