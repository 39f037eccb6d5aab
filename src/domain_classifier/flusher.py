"""
Periodic flushing of learned domain lists.

PeriodicFlusher is the single caller of ``DomainClassifier.persist`` while the
proxy runs: a daemon thread persists changed lists every interval, and
``stop`` performs a last flush on shutdown.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from domain_classifier.audit_logger import AuditLogger
    from domain_classifier.classifier import DomainClassifier

COMPONENT = "PeriodicFlusher"


class PeriodicFlusher:
    """
    Persists a classifier's learned lists on a fixed interval.

    Usage:
        with PeriodicFlusher(classifier, interval_seconds=300):
            serve_forever()
    """

    def __init__(
        self,
        classifier: DomainClassifier,
        interval_seconds: float,
        logger: Optional[AuditLogger] = None,
        wait: Optional[Callable[[float], bool]] = None,
    ) -> None:
        """
        Args:
            classifier: Classifier whose lists are flushed
            interval_seconds: Delay between flushes, must be positive
            logger: Optional logger for unexpected flush errors
            wait: Replacement for ``Event.wait`` returning True when stop was
                requested (primarily for tests)
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self._classifier = classifier
        self._interval = float(interval_seconds)
        self._logger = logger
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait
        self._thread: Optional[threading.Thread] = None
        self.flush_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="domain-list-flusher", daemon=True
        )
        self._thread.start()

    def stop(self, final_flush: bool = True) -> None:
        """Stop the flush thread and, by default, flush once more."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if final_flush:
            self.flush()

    def flush(self) -> None:
        """Persist changed lists now; unexpected errors are logged."""
        try:
            self._classifier.persist()
        except Exception as e:
            if self._logger is not None:
                self._logger.log_error(COMPONENT, "Unexpected error flushing domain lists", error=e)
        self.flush_count += 1

    def _run(self) -> None:
        while not self._stop_event.is_set():
            if self._wait(self._interval) or self._stop_event.is_set():
                break
            self.flush()

    def __enter__(self) -> PeriodicFlusher:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
