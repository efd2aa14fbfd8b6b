"""Unit tests for lifecycle state used by graceful shutdown."""

import logging
import threading
import time

from filebrowser.lifecycle.state import ServerLifecycle


def test_initial_state():
    """Lifecycle starts accepting work."""
    lifecycle = ServerLifecycle()
    assert not lifecycle.should_stop()
    assert not lifecycle.is_draining()


def test_begin_draining_sets_flags_once(caplog):
    caplog.set_level(logging.INFO, logger="filebrowser.lifecycle")
    lifecycle = ServerLifecycle()
    lifecycle.begin_draining()
    lifecycle.begin_draining()
    assert lifecycle.should_stop()
    assert lifecycle.is_draining()
    events = [getattr(r, "event", None) for r in caplog.records]
    assert events.count("draining_started") == 1


def test_register_and_cleanup_worker():
    lifecycle = ServerLifecycle()
    thread = threading.Thread(target=lambda: None)
    lifecycle.register_worker(thread)
    assert lifecycle.active_worker_count() == 1
    lifecycle.cleanup_worker(thread)
    assert lifecycle.active_worker_count() == 0


def test_cleanup_nonexistent_worker_is_safe():
    lifecycle = ServerLifecycle()
    lifecycle.cleanup_worker(threading.Thread(target=lambda: None))


def test_wait_for_workers_returns_true_when_empty():
    assert ServerLifecycle().wait_for_workers(timeout=1.0) is True


def test_wait_for_workers_waits_for_completion():
    """wait_for_workers joins threads that finish within the grace period."""
    lifecycle = ServerLifecycle()
    completed = threading.Event()

    def worker():
        time.sleep(0.2)
        completed.set()

    thread = threading.Thread(target=worker)
    lifecycle.register_worker(thread)
    thread.start()
    assert lifecycle.wait_for_workers(timeout=2.0) is True
    assert completed.is_set()


def test_wait_for_workers_timeout_exceeded(caplog):
    """wait_for_workers gives up once the grace period is spent."""
    caplog.set_level(logging.WARNING, logger="filebrowser.lifecycle")
    lifecycle = ServerLifecycle()
    release = threading.Event()
    thread = threading.Thread(target=release.wait, args=(10.0,))
    lifecycle.register_worker(thread)
    thread.start()
    try:
        start = time.monotonic()
        assert lifecycle.wait_for_workers(timeout=0.3) is False
        assert 0.2 < time.monotonic() - start < 1.0
    finally:
        release.set()
        thread.join()
    record = next(r for r in caplog.records if getattr(r, "event", None) == "shutdown_timeout")
    assert record.remaining_workers == 1
