"""Tests de la cola in-flight y del scheduler de reintentos."""

import threading
import time

import pytest

from omf_publisher.core.delivery import DeliveryQueue, RetryScheduler


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# =============================================================================
# COLA
# =============================================================================

class TestDeliveryQueue:

    def test_fifo_order(self):
        queue = DeliveryQueue()
        for item in ("a", "b", "c"):
            queue.put(item)

        assert queue.peek() == "a"
        assert queue.items() == ["a", "b", "c"]

    def test_peek_on_empty_queue(self):
        assert DeliveryQueue().peek() is None

    def test_pop_head_only_removes_expected(self):
        queue = DeliveryQueue()
        head, other = object(), object()
        queue.put(head)
        queue.put(other)

        assert queue.pop_head(other) is False
        assert queue.size == 2
        assert queue.pop_head(head) is True
        assert queue.peek() is other

    def test_put_returns_depth_and_tracks_stats(self):
        queue = DeliveryQueue(warn_threshold=0)
        assert queue.put(1) == 1
        assert queue.put(2) == 2
        queue.pop_head(1)

        stats = queue.get_stats()
        assert stats["enqueued"] == 2
        assert stats["delivered"] == 1
        assert stats["current_size"] == 1
        assert stats["max_depth"] == 2

    def test_clear(self):
        queue = DeliveryQueue()
        queue.put(1)
        queue.put(2)

        assert queue.clear() == 2
        assert queue.is_empty
        assert len(queue) == 0

    def test_depth_warning(self, caplog):
        queue = DeliveryQueue(warn_threshold=2)
        queue.put(1)
        queue.put(2)
        assert "depth reached 2" in caplog.text

    def test_warn_threshold_from_env(self, monkeypatch, caplog):
        monkeypatch.setenv("OMF_QUEUE_WARN_THRESHOLD", "1")
        DeliveryQueue().put("x")
        assert "depth reached 1" in caplog.text

    def test_concurrent_producers_keep_per_producer_order(self):
        queue = DeliveryQueue(warn_threshold=0)

        def produce(tag):
            for i in range(200):
                queue.put((tag, i))

        threads = [threading.Thread(target=produce, args=(t,)) for t in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        items = queue.items()
        assert len(items) == 800
        for tag in "abcd":
            assert [i for (t, i) in items if t == tag] == list(range(200))


# =============================================================================
# SCHEDULER
# =============================================================================

class TestRetryScheduler:

    def test_runs_ticks_until_stopped(self):
        calls = []
        scheduler = RetryScheduler(lambda: calls.append(1), interval_ms=5, initial_delay_ms=0)
        scheduler.start()

        assert wait_until(lambda: len(calls) >= 3)
        assert scheduler.is_running

        scheduler.stop(timeout=2.0)
        stopped_at = len(calls)
        time.sleep(0.05)

        assert not scheduler.is_running
        assert len(calls) == stopped_at

    def test_tick_exceptions_are_contained(self):
        calls = []

        def tick():
            calls.append(1)
            raise RuntimeError("boom")

        scheduler = RetryScheduler(tick, interval_ms=5, initial_delay_ms=0)
        scheduler.start()
        try:
            assert wait_until(lambda: len(calls) >= 2)
        finally:
            scheduler.stop(timeout=2.0)

        metrics = scheduler.metrics
        assert metrics["errors"] >= 2
        assert metrics["ticks"] >= metrics["errors"]

    def test_ticks_never_overlap(self):
        active = []
        overlaps = []

        def tick():
            if active:
                overlaps.append(1)
            active.append(1)
            time.sleep(0.01)
            active.pop()

        scheduler = RetryScheduler(tick, interval_ms=1, initial_delay_ms=0)
        scheduler.start()
        time.sleep(0.1)
        scheduler.stop(timeout=2.0)

        assert overlaps == []

    def test_cannot_start_twice(self):
        scheduler = RetryScheduler(lambda: None, interval_ms=5, initial_delay_ms=0)
        scheduler.start()
        try:
            with pytest.raises(RuntimeError):
                scheduler.start()
        finally:
            scheduler.stop(timeout=2.0)

    def test_stop_during_initial_delay(self):
        calls = []
        scheduler = RetryScheduler(lambda: calls.append(1), interval_ms=5, initial_delay_ms=1000)
        scheduler.start()
        scheduler.stop(timeout=2.0)

        assert calls == []
