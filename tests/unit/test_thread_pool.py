"""
Unit tests for the interop worker pool.
"""

import threading

import pytest

from quoted.core import ThreadPool, WorkerState


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()
        seen = []

        pool.submit(lambda value: (seen.append(value), done.set()), args=("x",))

        assert done.wait(timeout=5)
        assert seen == ["x"]
        pool.shutdown()

    def test_kwargs(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()
        result = {}

        def task(a, b=None):
            result.update(a=a, b=b)
            done.set()

        pool.submit(task, args=(1,), kwargs={"b": 2})

        assert done.wait(timeout=5)
        assert result == {"a": 1, "b": 2}
        pool.shutdown()

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_submit_after_shutdown(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        pool.shutdown()

        assert not pool.started
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        pool.submit(lambda: 1 // 0)
        pool.submit(done.set)

        assert done.wait(timeout=5)
        assert pool.stats["failed"] == 1
        assert pool.stats["workers"] == 1
        pool.shutdown()

    def test_shutdown_drains_queue(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        seen = []

        for i in range(10):
            pool.submit(seen.append, args=(i,))
        pool.shutdown(wait=True, timeout=5)

        assert seen == list(range(10))

    def test_scales_up_when_busy(self):
        pool = ThreadPool(min_workers=1, max_workers=3)
        pool.start()
        release = threading.Event()
        started = threading.Semaphore(0)

        def block():
            started.release()
            release.wait(5)

        pool.submit(block)
        assert started.acquire(timeout=5)
        pool.submit(block)

        assert pool.stats["workers"] == 2
        release.set()
        pool.shutdown()

    def test_start_twice(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        pool.start()

        assert pool.stats["workers"] == 2
        assert pool.stats["busy"] == 0
        pool.shutdown()

    def test_worker_states(self):
        assert {state.value for state in WorkerState} == {"idle", "busy", "stopped"}

    @pytest.mark.parametrize("low, high", [(0, 2), (3, 2)])
    def test_invalid_bounds(self, low, high):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=low, max_workers=high)
