"""
Tests for the result store operations, run against the in-memory store
"""

import itertools
import threading
import unittest
from datetime import datetime, timedelta, timezone

from bedside_scales.core.errors import PersistenceFailure
from bedside_scales.core.models import SaveContext, ScaleCategory, ScoreResult, Severity
from bedside_scales.storage import InMemoryResultStore

START = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_result(score=15, label="Mild brain injury", severity=Severity.LOW):
    return ScoreResult(total_score=score, interpretation_label=label, severity=severity)


def make_context(scale_id="glasgow", name="Glasgow", snapshot="Eye(4), Verbal(5), Motor(6)"):
    return SaveContext(
        scale_id=scale_id,
        scale_name=name,
        category=ScaleCategory.ADULT,
        description="Level of consciousness assessment",
        parameters_snapshot=snapshot,
    )


class StepClock:
    """Returns START, then one minute later on every call."""

    def __init__(self, step=timedelta(minutes=1)):
        self.now = START
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


class TestResultStore(unittest.TestCase):
    """Tests for save, list_all, get, delete and delete_all"""

    def setUp(self):
        counter = itertools.count(1)
        self.store = InMemoryResultStore(
            clock=StepClock(), id_factory=lambda: f"r{next(counter)}"
        ).open()
        self.addCleanup(self.store.close)

    def test_empty_store(self):
        """A new store lists nothing."""
        self.assertEqual(self.store.list_all(), [])

    def test_save_copies_fields(self):
        """The saved entry carries the score and the descriptive context."""
        entry = self.store.save(make_result(), make_context())
        self.assertEqual(entry.id, "r1")
        self.assertEqual(entry.scale_id, "glasgow")
        self.assertEqual(entry.scale_name, "Glasgow")
        self.assertEqual(entry.category, ScaleCategory.ADULT)
        self.assertEqual(entry.score, 15)
        self.assertEqual(entry.total_points, 15)
        self.assertEqual(entry.interpretation_label, "Mild brain injury")
        self.assertEqual(entry.severity, Severity.LOW)
        self.assertEqual(entry.parameters_snapshot, "Eye(4), Verbal(5), Motor(6)")
        self.assertEqual(entry.created_at, START)

    def test_save_then_list_round_trip(self):
        """list_all returns the saved entry unchanged."""
        entry = self.store.save(make_result(), make_context())
        self.assertEqual(self.store.list_all(), [entry])

    def test_list_most_recent_first(self):
        """Entries are ordered by timestamp, newest first."""
        first = self.store.save(make_result(), make_context())
        second = self.store.save(make_result(3, "Severe brain injury", Severity.HIGH), make_context())
        third = self.store.save(make_result(4, "High fall risk"), make_context("morse", "Morse"))
        self.assertEqual([e.id for e in self.store.list_all()], [third.id, second.id, first.id])

    def test_list_orders_by_timestamp_not_insertion(self):
        """A clock going backwards does not change the timestamp ordering."""
        times = iter([START, START - timedelta(hours=1), START + timedelta(hours=1)])
        store = InMemoryResultStore(clock=lambda: next(times)).open()
        ids = [store.save(make_result(), make_context()).id for _ in range(3)]
        self.assertEqual([e.id for e in store.list_all()], [ids[2], ids[0], ids[1]])

    def test_equal_timestamps_latest_saved_first(self):
        """Ties on created_at list the latest-saved entry first."""
        store = InMemoryResultStore(clock=lambda: START).open()
        ids = [store.save(make_result(), make_context()).id for _ in range(3)]
        self.assertEqual([e.id for e in store.list_all()], list(reversed(ids)))

    def test_ids_are_unique_by_default(self):
        """The default id factory gives every entry its own id."""
        store = InMemoryResultStore().open()
        ids = {store.save(make_result(), make_context()).id for _ in range(20)}
        self.assertEqual(len(ids), 20)

    def test_duplicate_id_rejected(self):
        """Saving never overwrites an existing entry."""
        store = InMemoryResultStore(id_factory=lambda: "same").open()
        store.save(make_result(), make_context())
        with self.assertRaises(PersistenceFailure):
            store.save(make_result(), make_context())
        self.assertEqual(len(store.list_all()), 1)

    def test_get(self):
        """get finds an entry by id and returns None otherwise."""
        entry = self.store.save(make_result(), make_context())
        self.assertEqual(self.store.get(entry.id), entry)
        self.assertIsNone(self.store.get("missing"))

    def test_delete(self):
        """delete removes exactly one entry."""
        first = self.store.save(make_result(), make_context())
        second = self.store.save(make_result(), make_context())
        self.assertTrue(self.store.delete(first.id))
        self.assertEqual(self.store.list_all(), [second])

    def test_delete_unknown_id(self):
        """Deleting a missing id leaves the collection unchanged."""
        entry = self.store.save(make_result(), make_context())
        self.assertFalse(self.store.delete("missing"))
        self.assertEqual(self.store.list_all(), [entry])

    def test_delete_all(self):
        """delete_all empties the store."""
        for _ in range(3):
            self.store.save(make_result(), make_context())
        self.store.delete_all()
        self.assertEqual(self.store.list_all(), [])

    def test_delete_all_on_empty_store(self):
        """delete_all on an empty store is harmless."""
        self.store.delete_all()
        self.assertEqual(self.store.list_all(), [])

    def test_concurrent_saves(self):
        """Saves from several threads are all kept."""
        store = InMemoryResultStore().open()

        def worker():
            for _ in range(25):
                store.save(make_result(), make_context())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(store.list_all()), 100)


class TestStoreLifecycle(unittest.TestCase):
    """Tests for opening and closing a store"""

    def test_closed_store_rejects_operations(self):
        """A store must be opened before use."""
        store = InMemoryResultStore()
        self.assertFalse(store.is_open)
        with self.assertRaises(PersistenceFailure):
            store.list_all()
        with self.assertRaises(PersistenceFailure):
            store.save(make_result(), make_context())

    def test_context_manager(self):
        """The store is open inside the with block and closed after it."""
        with InMemoryResultStore() as store:
            self.assertTrue(store.is_open)
            store.save(make_result(), make_context())
        self.assertFalse(store.is_open)
        with self.assertRaises(PersistenceFailure):
            store.delete_all()

    def test_close_twice(self):
        """Closing an already closed store does nothing."""
        store = InMemoryResultStore().open()
        store.close()
        store.close()
        self.assertFalse(store.is_open)


if __name__ == "__main__":
    unittest.main()
