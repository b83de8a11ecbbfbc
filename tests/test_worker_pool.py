"""
Tests for the WorkerPool component.

This module tests task submission, failure reporting, metrics and
shutdown of the pool that runs the reassembler and the error drain.
"""

import threading

import pytest

from b64filter.worker_pool import WorkerPool


class TestWorkerPool:
    """Test cases for WorkerPool component."""

    def test_worker_pool_lifecycle_management(self):
        """Tasks run and return results until the pool is shut down."""
        pool = WorkerPool(max_workers=2)

        assert pool.get_active_count() == 0, "Should have no active tasks initially"

        futures = [pool.submit_task(lambda n: n * 2, i) for i in range(5)]
        assert [f.result(timeout=2.0) for f in futures] == [0, 2, 4, 6, 8]

        pool.shutdown(wait=True)

    def test_failure_callback_receives_exception(self):
        """A task that raises is reported once through on_failure."""
        reported = []
        reported_event = threading.Event()

        def on_failure(error):
            reported.append(error)
            reported_event.set()

        pool = WorkerPool(max_workers=2, on_failure=on_failure)
        try:
            error = ValueError("stage failed")

            def failing_task():
                raise error

            future = pool.submit_task(failing_task)

            with pytest.raises(ValueError):
                future.result(timeout=2.0)
            assert reported_event.wait(timeout=2.0)
            assert reported == [error]
        finally:
            pool.shutdown(wait=True)

    def test_successful_task_not_reported(self):
        reported = []
        pool = WorkerPool(max_workers=1, on_failure=reported.append)
        pool.submit_task(lambda: "ok").result(timeout=2.0)
        pool.shutdown(wait=True)

        assert reported == []

    def test_stages_run_concurrently(self):
        """Both stages make progress at the same time, as the pipeline requires."""
        pool = WorkerPool(max_workers=2)
        first_started = threading.Event()
        second_started = threading.Event()

        def first():
            first_started.set()
            return second_started.wait(timeout=2.0)

        def second():
            second_started.set()
            return first_started.wait(timeout=2.0)

        try:
            futures = [pool.submit_task(first), pool.submit_task(second)]
            assert all(f.result(timeout=5.0) for f in futures)
        finally:
            pool.shutdown(wait=True)

    def test_active_count(self):
        pool = WorkerPool(max_workers=2)
        release = threading.Event()
        started = threading.Event()

        def blocking_task():
            started.set()
            release.wait(timeout=5.0)

        try:
            future = pool.submit_task(blocking_task)
            assert started.wait(timeout=2.0)

            assert pool.get_active_count() == 1

            release.set()
            future.result(timeout=2.0)
        finally:
            release.set()
            pool.shutdown(wait=True)

        assert pool.get_active_count() == 0

    def test_submit_after_shutdown_rejected(self):
        pool = WorkerPool()
        pool.shutdown(wait=True)

        with pytest.raises(RuntimeError, match="shut down"):
            pool.submit_task(lambda: None)
