"""
Result store interface and the in-memory implementation.

The store exclusively owns the saved results. Entries are append-only:
``save`` always creates a new entry and nothing edits an entry afterwards;
entries leave only through ``delete`` or ``delete_all``.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from bedside_scales.core.errors import PersistenceFailure
from bedside_scales.core.models import SaveContext, ScoreResult, StoredResult

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ResultStore(ABC):
    """
    Base class for result stores.

    Subclasses provide ``_load`` and ``_dump`` for the underlying medium.
    The store must be opened before use and closed at shutdown; it can also
    be used as a context manager. Calls are serialized with a lock around
    the medium.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        self._lock = threading.Lock()
        self._is_open = False

    # Lifecycle

    def open(self) -> "ResultStore":
        self._open_medium()
        self._is_open = True
        logger.debug("%s opened", self)
        return self

    def close(self) -> None:
        if self._is_open:
            self._close_medium()
            self._is_open = False
            logger.debug("%s closed", self)

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> "ResultStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _open_medium(self) -> None:
        pass

    def _close_medium(self) -> None:
        pass

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise PersistenceFailure(f"{self} is not open")

    @abstractmethod
    def _load(self) -> List[StoredResult]:
        """Read every entry in insertion order. Raise PersistenceFailure on any problem."""

    @abstractmethod
    def _dump(self, entries: List[StoredResult]) -> None:
        """Replace the stored entries. Raise PersistenceFailure on any problem."""

    # Operations

    def save(self, result: ScoreResult, context: SaveContext) -> StoredResult:
        """Append a new entry for ``result`` and return it.

        Raises:
            PersistenceFailure: if the entry could not be written.
        """
        self._ensure_open()
        entry = StoredResult(
            id=self._id_factory(),
            scale_id=context.scale_id,
            scale_name=context.scale_name,
            category=context.category,
            description=context.description,
            score=result.total_score,
            total_points=result.total_score,
            interpretation_label=result.interpretation_label,
            severity=result.severity,
            parameters_snapshot=context.parameters_snapshot,
            created_at=self._clock(),
        )
        with self._lock:
            entries = self._load()
            if any(existing.id == entry.id for existing in entries):
                raise PersistenceFailure(f"Result id {entry.id} already exists")
            entries.append(entry)
            self._dump(entries)
        logger.info("Saved result %s for scale '%s'", entry.id, entry.scale_id)
        return entry

    def list_all(self) -> List[StoredResult]:
        """All entries, most recent first.

        Entries with equal timestamps are listed latest-saved first. A read
        failure is logged and yields an empty list.
        """
        self._ensure_open()
        with self._lock:
            try:
                entries = self._load()
            except PersistenceFailure as e:
                logger.error("Could not read results from %s: %s", self, e)
                return []
        newest_first = list(reversed(entries))
        newest_first.sort(key=lambda entry: entry.created_at, reverse=True)
        return newest_first

    def get(self, result_id: str) -> Optional[StoredResult]:
        for entry in self.list_all():
            if entry.id == result_id:
                return entry
        return None

    def delete(self, result_id: str) -> bool:
        """Remove one entry. Returns False, without writing, if the id is absent.

        Raises:
            PersistenceFailure: if the store could not be read or written.
        """
        self._ensure_open()
        with self._lock:
            entries = self._load()
            remaining = [entry for entry in entries if entry.id != result_id]
            if len(remaining) == len(entries):
                logger.debug("Delete of unknown result %s ignored", result_id)
                return False
            self._dump(remaining)
        logger.info("Deleted result %s", result_id)
        return True

    def delete_all(self) -> None:
        """Remove every entry.

        Raises:
            PersistenceFailure: if the store could not be written.
        """
        self._ensure_open()
        with self._lock:
            self._dump([])
        logger.info("Deleted all results from %s", self)


class InMemoryResultStore(ResultStore):
    """Keeps results in process memory. Used in tests and as a scratch store."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._entries: List[StoredResult] = []

    def _load(self) -> List[StoredResult]:
        return list(self._entries)

    def _dump(self, entries: List[StoredResult]) -> None:
        self._entries = list(entries)

    def __repr__(self) -> str:
        return "InMemoryResultStore()"
