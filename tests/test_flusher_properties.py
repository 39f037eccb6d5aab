"""
Tests for periodic flushing of the learned domain lists.

The wait function is replaced so the loop advances one interval per call
without sleeping.
"""

import io
import threading
from pathlib import Path

import pytest

from domain_classifier.audit_logger import AuditLogger
from domain_classifier.classifier import DomainClassifier
from domain_classifier.config import ClassifierConfig, DomainListPaths
from domain_classifier.flusher import PeriodicFlusher
from domain_classifier.persistence import load_domain_list
from domain_classifier.target import parse_target


class SteppedWait:
    """Wait replacement that lets the loop run a fixed number of intervals."""

    def __init__(self, steps: int) -> None:
        self.steps = steps
        self.calls: list[float] = []
        self.exhausted = threading.Event()

    def __call__(self, timeout: float) -> bool:
        self.calls.append(timeout)
        if len(self.calls) > self.steps:
            self.exhausted.set()
            return True
        return False


class CountingClassifier:
    """Stands in for DomainClassifier where only persist calls matter."""

    def __init__(self, error: Exception = None) -> None:
        self.persist_calls = 0
        self.error = error

    def persist(self):
        self.persist_calls += 1
        if self.error is not None:
            raise self.error
        return []


def make_classifier(directory: Path) -> DomainClassifier:
    classifier = DomainClassifier(ClassifierConfig(), DomainListPaths.from_dir(directory))
    classifier.load()
    return classifier


class TestPeriodicFlush:
    """The flusher SHALL persist once per interval and once more on stop."""

    def test_flushes_every_interval(self) -> None:
        classifier = CountingClassifier()
        wait = SteppedWait(steps=3)
        flusher = PeriodicFlusher(classifier, interval_seconds=300, wait=wait)

        flusher.start()
        assert wait.exhausted.wait(timeout=5)
        flusher.stop(final_flush=False)

        assert classifier.persist_calls == 3
        assert flusher.flush_count == 3
        assert wait.calls == [300.0] * 4
        assert not flusher.running

    def test_stop_performs_final_flush(self, tmp_path: Path) -> None:
        classifier = make_classifier(tmp_path)
        flusher = PeriodicFlusher(classifier, interval_seconds=3600)

        flusher.start()
        assert flusher.running
        classifier.record_blocked(parse_target("x.com:443"))
        flusher.stop()

        assert load_domain_list(tmp_path / "blocked") == ["x.com"]
        assert not classifier.blocked_changed
        assert flusher.flush_count == 1

    def test_context_manager_starts_and_stops(self, tmp_path: Path) -> None:
        classifier = make_classifier(tmp_path)

        with PeriodicFlusher(classifier, interval_seconds=3600) as flusher:
            assert flusher.running
            classifier.record_direct(parse_target("d.com"))

        assert not flusher.running
        assert load_domain_list(tmp_path / "direct") == ["d.com"]

    def test_start_twice_keeps_one_thread(self) -> None:
        flusher = PeriodicFlusher(CountingClassifier(), interval_seconds=3600)
        flusher.start()
        first = flusher._thread
        flusher.start()

        assert flusher._thread is first
        flusher.stop(final_flush=False)

    def test_unexpected_error_is_logged_and_loop_continues(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=io.StringIO())
        classifier = CountingClassifier(error=RuntimeError("boom"))
        wait = SteppedWait(steps=2)
        flusher = PeriodicFlusher(classifier, interval_seconds=1, logger=logger, wait=wait)

        flusher.start()
        assert wait.exhausted.wait(timeout=5)
        flusher.stop(final_flush=False)

        assert classifier.persist_calls == 2
        assert len(logger.entries) == 2
        assert logger.entries[0].component == "PeriodicFlusher"
        assert logger.entries[0].data["error_type"] == "RuntimeError"

    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, interval: float) -> None:
        with pytest.raises(ValueError):
            PeriodicFlusher(CountingClassifier(), interval_seconds=interval)
