"""
Unit tests for the worker thread pool.
"""

import threading
import time

import pytest

from echoserver.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(min_workers=2, max_workers=3, queue_size=2, poll_interval=0.2)
    pool.start()
    yield pool
    pool.shutdown(wait=False)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self, pool):
        done = threading.Event()

        assert pool.submit(done.set)
        assert done.wait(2.0)

    def test_args_and_kwargs(self, pool):
        results = []
        finished = threading.Event()

        def task(a, b=0):
            results.append(a + b)
            finished.set()

        pool.submit(task, args=(1,), kwargs={"b": 2})

        assert finished.wait(2.0)
        assert results == [3]

    def test_failing_task_does_not_kill_worker(self, pool):
        done = threading.Event()

        pool.submit(lambda: 1 / 0)
        pool.submit(done.set)

        assert done.wait(2.0)

    def test_full_queue_rejects(self, pool):
        release = threading.Event()

        # Occupy every worker (including the one scale-up adds), then fill the queue
        accepted = [pool.submit(release.wait, args=(5.0,), block=False) for _ in range(10)]
        release.set()

        assert accepted.count(False) > 0
        assert pool.worker_count <= 3

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    def test_shutdown_waits_for_queued_tasks(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10)
        pool.start()
        results = []

        for i in range(3):
            pool.submit(lambda i=i: (time.sleep(0.01), results.append(i)))
        pool.shutdown(wait=True, timeout=5.0)

        assert sorted(results) == [0, 1, 2]
        assert not pool.is_running

    def test_stats(self, pool):
        stats = pool.stats

        assert stats["workers"] == 2
        assert stats["queued"] == 0
        assert stats["completed"] == 0

    def test_counts_outcomes(self, pool):
        done = threading.Event()

        pool.submit(lambda: 1 / 0)
        pool.submit(done.set)
        assert done.wait(2.0)
        time.sleep(0.05)

        stats = pool.stats
        assert stats["failed"] == 1
        assert stats["completed"] >= 1

    def test_expired_job_is_skipped(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10, poll_interval=0.1)
        pool.start()
        release = threading.Event()
        ran = []
        released = []

        pool.submit(release.wait, args=(5.0,))
        time.sleep(0.05)
        pool.submit(ran.append, args=(1,), timeout=0.01, on_expire=released.append)
        time.sleep(0.1)
        release.set()
        pool.shutdown(wait=True, timeout=5.0)

        assert ran == []
        assert released == [1]
        assert pool.stats["expired"] == 1

    def test_discarded_jobs_are_released(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=10, poll_interval=0.1)
        pool.start()
        release = threading.Event()
        ran = []
        released = []

        pool.submit(release.wait, args=(5.0,))
        time.sleep(0.05)
        for i in range(3):
            pool.submit(ran.append, args=(i,), on_expire=released.append)

        # the worker is still busy while the queue is discarded
        threading.Timer(0.3, release.set).start()
        pool.shutdown(wait=False)

        assert ran == []
        assert released == [0, 1, 2]
