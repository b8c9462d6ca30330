"""
Concurrency tests for the URL store.

Worker threads share one store, the way request handlers do. These tests
check that writes are exclusive (no lost statistics updates) and that a
flush is atomic for readers.
"""

import json
import threading
import time

import pytest

from shorturl.core.exceptions import StorageError
from shorturl.services.url_store import ReadWriteLock

ALIASES = [f"al{i:04d}" for i in range(40)]


def populate(store):
    store.import_urls(json.dumps({alias: f"https://example.com/{alias}" for alias in ALIASES}))
    for alias in ALIASES[:5]:
        store.update_stats(alias, "1.2.3.4", "http://ref", "City, Country")


def run_threads(threads):
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
        assert not thread.is_alive(), "worker thread did not finish"


class TestReadWriteLock:
    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=5)
        errors = []

        def reader():
            with lock.read():
                try:
                    both_inside.wait()
                except threading.BrokenBarrierError as e:
                    errors.append(e)

        run_threads([threading.Thread(target=reader) for _ in range(2)])
        assert errors == []

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        writer_inside = threading.Event()
        release_writer = threading.Event()
        reader_entered = threading.Event()

        def writer():
            with lock.write():
                writer_inside.set()
                release_writer.wait(timeout=5)

        def reader():
            with lock.read():
                reader_entered.set()

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        assert writer_inside.wait(timeout=5)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        assert not reader_entered.wait(timeout=0.2)

        release_writer.set()
        assert reader_entered.wait(timeout=5)
        writer_thread.join(timeout=5)
        reader_thread.join(timeout=5)

    def test_lock_released_after_exception(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            with lock.write():
                raise RuntimeError("boom")
        with lock.write():
            pass


class TestStoreConcurrency:
    def test_concurrent_stats_updates_are_not_lost(self, store):
        store.save("ab12cd", "https://example.com")
        workers, visits = 8, 25

        def visit(worker):
            for i in range(visits):
                store.update_stats("ab12cd", f"10.0.{worker}.{i}", "", "City, Country")

        run_threads([threading.Thread(target=visit, args=(w,)) for w in range(workers)])

        stats = store.get_stats_snapshot("ab12cd")
        assert stats.count == workers * visits
        assert len(stats.last_ips) == 5

    def test_flush_is_atomic_for_readers(self, store):
        populate(store)
        stop = threading.Event()
        violations = []

        def read_records():
            while not stop.is_set():
                for alias in ALIASES:
                    try:
                        store.get_record(alias)
                    except StorageError as e:
                        violations.append(str(e))

        def read_backups():
            while not stop.is_set():
                size = len(json.loads(store.backup()))
                if size not in (0, len(ALIASES)):
                    violations.append(f"partial backup with {size} entries")

        def flush_and_refill():
            for _ in range(5):
                time.sleep(0.01)
                flushed = store.flush()
                if len(flushed) != len(ALIASES):
                    violations.append(f"flush returned {len(flushed)} entries")
                populate(store)
            stop.set()

        threads = [threading.Thread(target=read_records) for _ in range(3)]
        threads.append(threading.Thread(target=read_backups))
        threads.append(threading.Thread(target=flush_and_refill))
        run_threads(threads)

        assert violations == []

    def test_redirect_counts_survive_concurrent_flush(self, store):
        store.save("ab12cd", "https://example.com")
        results = []

        def visit():
            try:
                store.update_stats("ab12cd", "1.2.3.4", "", "City, Country")
                results.append("counted")
            except Exception as e:
                results.append(type(e).__name__)

        threads = [threading.Thread(target=visit) for _ in range(10)]
        threads.append(threading.Thread(target=store.flush))
        run_threads(threads)

        # every update either landed before the flush or found the alias gone
        assert set(results) <= {"counted", "ShortCodeNotFoundError"}
        assert store.get_stats("ab12cd") == ("", False)
