"""Unit tests for the per-request log context and its logger adapter."""

import logging
import threading
import uuid

import pytest

from filebrowser.domain.correlation_id import (
    CorrelationLoggerAdapter,
    bind_username,
    clear_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(name="logger_adapter")
def logger_adapter_fixture():
    """Create a CorrelationLoggerAdapter instance."""
    base_logger = logging.getLogger("filebrowser.test")
    return CorrelationLoggerAdapter(base_logger, {})


def test_generate_correlation_id_returns_unique_uuids():
    first = generate_correlation_id()
    second = generate_correlation_id()
    uuid.UUID(first)
    assert first != second


def test_clear_resets_id_and_username(logger_adapter):
    set_correlation_id("abc")
    bind_username("alice")
    clear_correlation_id()
    assert get_correlation_id() is None
    _, kwargs = logger_adapter.process("msg", {})
    assert "username" not in kwargs["extra"]


def test_adapter_injects_correlation_id(logger_adapter):
    """Test that adapter injects correlation_id from context."""
    set_correlation_id("test-correlation-123")

    _, kwargs = logger_adapter.process("Test message", {})

    assert kwargs["extra"]["correlation_id"] == "test-correlation-123"


def test_adapter_defaults_correlation_id_when_missing(logger_adapter):
    """Test that adapter defaults correlation_id to '-' when not set."""
    clear_correlation_id()

    _, kwargs = logger_adapter.process("Test message", {})

    assert kwargs["extra"]["correlation_id"] == "-"


def test_adapter_injects_bound_username(logger_adapter):
    bind_username("alice")

    _, kwargs = logger_adapter.process("Test message", {})

    assert kwargs["extra"]["username"] == "alice"


def test_explicit_username_wins_over_bound_one(logger_adapter):
    bind_username("alice")

    _, kwargs = logger_adapter.process("m", {"extra": {"username": "bob"}})

    assert kwargs["extra"]["username"] == "bob"


def test_adapter_preserves_existing_extra_fields(logger_adapter):
    """Test that adapter preserves existing extra fields."""
    set_correlation_id("test-id")
    original_extra = {"event": "directory_listed", "status_code": 200}

    _, kwargs = logger_adapter.process("Test message", {"extra": original_extra})

    assert kwargs["extra"]["event"] == "directory_listed"
    assert kwargs["extra"]["status_code"] == 200
    assert kwargs["extra"]["component"] == "test"
    assert "correlation_id" not in original_extra


def test_adapter_with_nested_component():
    """Test that adapter correctly extracts nested component names."""
    adapter = CorrelationLoggerAdapter(
        logging.getLogger("filebrowser.transport.worker"), {}
    )

    _, kwargs = adapter.process("Test message", {})

    assert kwargs["extra"]["component"] == "transport.worker"


def test_adapter_handles_foreign_logger():
    adapter = CorrelationLoggerAdapter(logging.getLogger("other.module"), {})

    _, kwargs = adapter.process("Test message", {})

    assert kwargs["extra"]["component"] == "other.module"


def test_context_isolated_between_threads():
    """Separate threads keep independent IDs."""
    results = {}

    def worker(worker_id: str):
        set_correlation_id(f"worker-{worker_id}")
        bind_username(f"user-{worker_id}")
        results[worker_id] = get_correlation_id()
        clear_correlation_id()

    threads = [threading.Thread(target=worker, args=(str(i),)) for i in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for worker_id, correlation_id in results.items():
        assert correlation_id == f"worker-{worker_id}"
