"""
Tests for the download and delete phase workers.
"""

import unittest

from s3bench.algorithms.delete import DeleteWorker
from s3bench.algorithms.download import DownloadWorker
from s3bench.common import KeyRegistry, ResultAggregator, RunWindow, run_phase
from fake_store import BrokenStore, FakeObjectStore


def populated(count):
    store = FakeObjectStore()
    registry = KeyRegistry()
    for n in range(1, count + 1):
        key = f"Object-{n}"
        store.objects[key] = b"data"
        registry.add(key)
    return store, registry


class TestDownloadWorker(unittest.TestCase):
    """Test DownloadWorker."""

    def test_downloads_every_key(self):
        store, registry = populated(10)
        results = ResultAggregator()
        worker = DownloadWorker(1, store, registry, results)

        while worker.step():
            pass

        self.assertEqual(sorted(store.operations("get")), sorted(registry.snapshot()))
        self.assertEqual(results.downloaded.value, 10)
        self.assertEqual(worker.bytes_read, 40)
        self.assertEqual(results.download_slowdowns.value, 0)

    def test_workers_overlap(self):
        """Workers walk the whole registry each; duplicate downloads are expected."""
        store, registry = populated(5)
        results = ResultAggregator()

        run_phase(3, RunWindow(None), lambda i: DownloadWorker(i, store, registry, results), "download")

        self.assertEqual(len(store.operations("get")), 15)
        self.assertEqual(results.downloaded.value, 15)

    def test_stops_after_three_errors(self):
        store, registry = populated(10)
        store.fail = lambda op, key: True
        results = ResultAggregator()
        worker = DownloadWorker(1, store, registry, results)

        with self.assertLogs("s3bench.algorithms.download", level="WARNING"):
            steps = 0
            while worker.step():
                steps += 1

        self.assertEqual(len(store.operations("get")), 3)
        self.assertEqual(results.download_slowdowns.value, 3)
        self.assertEqual(results.downloaded.value, 0)

    def test_errors_not_reset_by_success(self):
        """Three failures in total stop the worker even with successes between them."""
        store, registry = populated(10)
        order = registry.snapshot()
        failing = {order[0], order[2], order[4]}
        store.fail = lambda op, key: key in failing
        results = ResultAggregator()
        worker = DownloadWorker(1, store, registry, results)

        with self.assertLogs("s3bench.algorithms.download", level="WARNING"):
            while worker.step():
                pass

        self.assertEqual(store.operations("get"), order[:5])
        self.assertEqual(results.downloaded.value, 2)
        self.assertEqual(results.download_slowdowns.value, 3)

    def test_counter_never_negative(self):
        store, registry = populated(3)
        store.fail = lambda op, key: True
        results = ResultAggregator()

        with self.assertLogs("s3bench.algorithms.download", level="WARNING"):
            run_phase(4, RunWindow(None), lambda i: DownloadWorker(i, store, registry, results), "download")

        self.assertEqual(results.downloaded.value, 0)
        self.assertEqual(results.download_slowdowns.value, 12)

    def test_unexpected_error_is_not_counted(self):
        _, registry = populated(5)
        store = BrokenStore()
        results = ResultAggregator()

        with self.assertLogs("s3bench.common.phase_runner", level="ERROR"):
            run_phase(2, RunWindow(None), lambda i: DownloadWorker(i, store, registry, results), "download")

        self.assertEqual(len(store.operations("get")), 2)
        self.assertEqual(results.downloaded.value, 0)
        self.assertEqual(results.download_slowdowns.value, 2)

    def test_empty_registry(self):
        store = FakeObjectStore()
        worker = DownloadWorker(1, store, KeyRegistry(), ResultAggregator())
        self.assertFalse(worker.step())
        self.assertEqual(store.calls, [])


class TestDeleteWorker(unittest.TestCase):
    """Test DeleteWorker."""

    def test_single_worker_deletes_each_key_once(self):
        """100 uploads and one worker: Object-1..Object-100 deleted once, before the deadline."""
        store, _ = populated(100)
        results = ResultAggregator()
        window = RunWindow(60.0)

        run_phase(1, window, lambda i: DeleteWorker(i, store, results, 100), "delete")

        self.assertEqual(store.operations("delete"), [f"Object-{n}" for n in range(1, 101)])
        self.assertEqual(store.objects, {})
        self.assertEqual(results.deleted.value, 100)
        self.assertFalse(window.expired())

    def test_many_workers_partition_indexes(self):
        store, _ = populated(200)
        results = ResultAggregator()

        run_phase(8, RunWindow(None), lambda i: DeleteWorker(i, store, results, 200), "delete")

        deleted = store.operations("delete")
        self.assertEqual(sorted(deleted), sorted(f"Object-{n}" for n in range(1, 201)))
        self.assertEqual(len(deleted), 200)
        self.assertEqual(results.deleted.value, 200)

    def test_failed_slot_is_retried(self):
        store, _ = populated(3)
        attempts = {"Object-2": 1}

        def fail(op, key):
            if attempts.get(key, 0) > 0:
                attempts[key] -= 1
                return True
            return False

        store.fail = fail
        results = ResultAggregator()
        worker = DeleteWorker(1, store, results, 3)

        with self.assertLogs("s3bench.algorithms.delete", level="WARNING"):
            while worker.step():
                pass

        self.assertEqual(store.operations("delete"), ["Object-1", "Object-2", "Object-2", "Object-3"])
        self.assertEqual(results.delete_slowdowns.value, 1)
        self.assertEqual(results.deleted.value, 3)

    def test_stops_after_three_errors(self):
        store, _ = populated(10)
        store.fail = lambda op, key: True
        results = ResultAggregator()
        worker = DeleteWorker(1, store, results, 10)

        with self.assertLogs("s3bench.algorithms.delete", level="WARNING"):
            while worker.step():
                pass

        self.assertEqual(store.operations("delete"), ["Object-1"] * 3)
        self.assertEqual(results.delete_slowdowns.value, 3)
        self.assertEqual(results.deleted.value, 0)

    def test_unexpected_error_releases_index(self):
        store = BrokenStore()
        results = ResultAggregator()

        with self.assertLogs("s3bench.common.phase_runner", level="ERROR"):
            run_phase(2, RunWindow(None), lambda i: DeleteWorker(i, store, results, 5), "delete")

        self.assertEqual(len(store.operations("delete")), 2)
        self.assertEqual(results.deleted.value, 0)
        self.assertEqual(results.delete_slowdowns.value, 2)

    def test_nothing_to_delete(self):
        store = FakeObjectStore()
        results = ResultAggregator()
        worker = DeleteWorker(1, store, results, 0)

        self.assertFalse(worker.step())
        self.assertEqual(store.calls, [])
        self.assertEqual(results.deleted.value, 0)


if __name__ == '__main__':
    unittest.main()
