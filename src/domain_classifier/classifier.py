"""
Domain classifier.

Decides whether a destination is reached directly or relayed through the
proxy, and learns from connection outcomes. Five sets take part, checked in
this order:

1. always-direct   admin list, wins over everything
2. always-blocked  admin list
3. transient       domains blocked within the last TTL window
4. learned-blocked / learned-direct  observed outcomes, persisted

The two learned sets never share a name: recording a domain in one removes it
from the other. Each set has its own lock, so that pair of updates is not
atomic as a whole; a concurrent reader may briefly see the name in both sets
or in neither. Lookups are advisory, which makes that acceptable.
"""

import threading
import time
from typing import Callable, Iterable, Optional

from domain_classifier.audit_logger import AuditLogger
from domain_classifier.config import ClassifierConfig, DomainListPaths
from domain_classifier.domain_set import ConcurrentDomainSet
from domain_classifier.enums import DomainListKind, RecordOutcome, Route
from domain_classifier.exceptions import PersistenceError
from domain_classifier.expiring_set import ExpiringDomainSet
from domain_classifier.notifications import BlockEvent, EventRouter
from domain_classifier.persistence import load_domain_list, store_domain_list
from domain_classifier.target import Target, is_ip_address

COMPONENT = "DomainClassifier"


def _has_port(name: str) -> bool:
    return ":" in name and not is_ip_address(name)


class DomainClassifier:
    """
    Classifies destinations as direct or blocked and records outcomes.

    Create one per proxy process, call ``load`` before serving requests and
    ``close`` at shutdown. All query and record methods may be called from
    any number of threads; ``persist`` calls must come from one flusher.
    """

    def __init__(
        self,
        config: ClassifierConfig,
        paths: DomainListPaths,
        logger: Optional[AuditLogger] = None,
        notifier: Optional[EventRouter] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            config: Learning switches and transient TTL
            paths: Domain list file locations
            logger: Logger for list changes, conflicts and I/O errors
            notifier: Receives an event for every new transient block
            clock: Time source for transient expiry (injectable for tests)
        """
        self._config = config
        self._paths = paths
        self._logger = logger
        self._notifier = notifier

        self._always_direct: frozenset[str] = frozenset()
        self._always_blocked: frozenset[str] = frozenset()
        self._direct = ConcurrentDomainSet()
        self._blocked = ConcurrentDomainSet()
        self._transient = ExpiringDomainSet(
            ttl_seconds=config.transient_ttl_seconds, clock=clock
        )

        self._blocked_changed = False
        self._direct_changed = False
        self._dirty_lock = threading.Lock()
        self._persist_lock = threading.Lock()

    @property
    def config(self) -> ClassifierConfig:
        return self._config

    @property
    def paths(self) -> DomainListPaths:
        return self._paths

    @property
    def blocked_changed(self) -> bool:
        return self._blocked_changed

    @property
    def direct_changed(self) -> bool:
        return self._direct_changed

    @property
    def notifier(self) -> Optional[EventRouter]:
        return self._notifier

    @property
    def transient(self) -> ExpiringDomainSet:
        return self._transient

    # ------------------------------------------------------------------
    # Target queries
    # ------------------------------------------------------------------

    def is_in_always_sets(self, target: Target) -> bool:
        """True for bare host names and for hosts named in either always list."""
        return (
            target.domain == ""
            or target.host in self._always_direct
            or target.domain in self._always_direct
            or target.host in self._always_blocked
            or target.domain in self._always_blocked
        )

    def is_always_direct(self, target: Target) -> bool:
        # Bare host names are local, always reached directly
        if target.domain == "":
            return True
        return target.host in self._always_direct or target.domain in self._always_direct

    def is_always_blocked(self, target: Target) -> bool:
        if target.domain == "":
            return False
        return target.host in self._always_blocked or target.domain in self._always_blocked

    def is_blocked(self, target: Target) -> bool:
        if target.domain == "":
            return False
        return self.lookup_blocked(target.host) or self.lookup_blocked(target.domain)

    def is_direct(self, target: Target) -> bool:
        if target.domain == "":
            return True
        return self.lookup_direct(target.host) or self.lookup_direct(target.domain)

    def classify(self, target: Target) -> Route:
        """Route for a target; unknown domains are tried directly."""
        return Route.BLOCKED if self.is_blocked(target) else Route.DIRECT

    # ------------------------------------------------------------------
    # Name queries
    # ------------------------------------------------------------------

    def lookup_blocked(self, name: str) -> bool:
        """Whether a bare host or domain name is treated as blocked."""
        assert not _has_port(name), f"lookup_blocked got host with port: {name}"
        if name in self._always_direct:
            return False
        if name in self._always_blocked:
            return True
        if self._transient.has(name):
            return True
        return self._blocked.has(name)

    def lookup_direct(self, name: str) -> bool:
        """Whether a bare host or domain name is known to be reachable directly."""
        assert not _has_port(name), f"lookup_direct got host with port: {name}"
        if name in self._always_direct:
            return True
        if name in self._always_blocked:
            return False
        return self._direct.has(name)

    # ------------------------------------------------------------------
    # Recording outcomes
    # ------------------------------------------------------------------

    def record_transient_blocked(self, target: Target) -> RecordOutcome:
        """Penalize a target's domain for one TTL window without persisting it."""
        if self.is_always_direct(target) or target.host_is_ip():
            return RecordOutcome.NOT_RECORDED

        if self._transient.add(target.domain):
            if self._logger is not None:
                self._logger.info(
                    COMPONENT,
                    f"{target.host_port} blocked",
                    {"domain": target.domain, "ttl_seconds": self._transient.ttl_seconds},
                )
            if self._notifier is not None:
                self._notifier.publish(
                    BlockEvent.now(
                        domain=target.domain,
                        host_port=target.host_port,
                        ttl_seconds=self._transient.ttl_seconds,
                    )
                )
        return RecordOutcome.RECORDED_TRANSIENT

    def record_blocked(self, target: Target) -> RecordOutcome:
        """
        Record that a direct connection to the target failed.

        With blocked-list updates switched off the domain only goes into the
        transient set.
        """
        if not self._config.update_blocked:
            return self.record_transient_blocked(target)

        if self.is_always_direct(target) or target.host_is_ip():
            return RecordOutcome.NOT_RECORDED

        domain = target.domain
        if self._blocked.has(domain):
            return RecordOutcome.ALREADY_RECORDED

        self._blocked.add(domain)
        self._mark_changed(DomainListKind.BLOCKED)
        self._debug(f"{domain} added to blocked list")

        if self._direct.has(domain):
            self._direct.delete(domain)
            self._mark_changed(DomainListKind.DIRECT)
            self._debug(f"{domain} deleted from direct list")

        return RecordOutcome.RECORDED

    def record_direct(self, target: Target) -> RecordOutcome:
        """Record that a direct connection to the target succeeded."""
        if not self._config.update_direct:
            return RecordOutcome.NOT_RECORDED

        if self.is_in_always_sets(target) or target.host_is_ip():
            return RecordOutcome.NOT_RECORDED

        domain = target.domain
        if self._direct.has(domain):
            return RecordOutcome.ALREADY_RECORDED

        self._direct.add(domain)
        self._mark_changed(DomainListKind.DIRECT)
        self._debug(f"{domain} added to direct list")

        if self._blocked.has(domain):
            self._blocked.delete(domain)
            self._mark_changed(DomainListKind.BLOCKED)
            self._debug(f"{domain} deleted from blocked list")

        return RecordOutcome.RECORDED

    # ------------------------------------------------------------------
    # Loading and persisting
    # ------------------------------------------------------------------

    def load(
        self,
        seed_blocked: Iterable[str] = (),
        seed_direct: Iterable[str] = (),
    ) -> None:
        """
        Build all sets from the seed lists and the domain list files.

        Unreadable files are logged and treated as empty. Afterwards names in
        either always list are dropped from the learned lists, learned-direct
        loses anything also learned-blocked, and always-direct loses anything
        also always-blocked.
        """
        self._blocked.add_all(seed_blocked)
        self._direct.add_all(seed_direct)
        self._blocked.add_all(self._read_list(DomainListKind.BLOCKED))
        self._direct.add_all(self._read_list(DomainListKind.DIRECT))

        always_blocked = frozenset(self._read_list(DomainListKind.ALWAYS_BLOCKED))
        always_direct = set(self._read_list(DomainListKind.ALWAYS_DIRECT))

        self._filter_out(always_direct)
        self._filter_out(always_blocked)

        if self._direct.discard_all(self._blocked.snapshot()):
            self._mark_changed(DomainListKind.DIRECT)

        for name in sorted(always_blocked & always_direct):
            if self._logger is not None:
                self._logger.warn(
                    COMPONENT,
                    f"{name} in both always blocked and direct domain lists, taken as blocked",
                    {"domain": name},
                )
            always_direct.discard(name)

        self._always_blocked = always_blocked
        self._always_direct = frozenset(always_direct)

        if self._logger is not None:
            self._logger.info(
                COMPONENT,
                "Domain lists loaded",
                {
                    "blocked": len(self._blocked),
                    "direct": len(self._direct),
                    "always_blocked": len(self._always_blocked),
                    "always_direct": len(self._always_direct),
                },
            )

    def persist(self) -> list[DomainListKind]:
        """
        Write every changed learned list whose updates are switched on.

        A failed write is logged and leaves the list marked changed so the
        next call retries it.

        Returns:
            The lists that were written
        """
        written = []
        with self._persist_lock:
            if self._config.update_blocked and self._store(DomainListKind.BLOCKED, self._blocked):
                written.append(DomainListKind.BLOCKED)
            if self._config.update_direct and self._store(DomainListKind.DIRECT, self._direct):
                written.append(DomainListKind.DIRECT)
        return written

    store = persist

    def close(self) -> None:
        """Flush changed lists before shutdown."""
        self.persist()

    def snapshot(self, kind: DomainListKind) -> list[str]:
        """Sorted contents of one list."""
        if kind is DomainListKind.BLOCKED:
            names = self._blocked.snapshot()
        elif kind is DomainListKind.DIRECT:
            names = self._direct.snapshot()
        elif kind is DomainListKind.ALWAYS_BLOCKED:
            names = list(self._always_blocked)
        else:
            names = list(self._always_direct)
        return sorted(names)

    def _store(self, kind: DomainListKind, names: ConcurrentDomainSet) -> bool:
        # Clear before the snapshot so changes made during the write stay dirty
        with self._dirty_lock:
            if not self._is_changed(kind):
                return False
            self._set_changed(kind, False)

        path = self._paths.path_for(kind)
        try:
            store_domain_list(path, names.snapshot())
        except PersistenceError as e:
            self._mark_changed(kind)
            if self._logger is not None:
                self._logger.log_error(
                    COMPONENT,
                    f"Error storing {kind.value} domain list",
                    error=e,
                    file_path=str(path),
                )
            return False

        self._debug(f"{kind.value} domain list stored", {"file_path": str(path)})
        return True

    def _read_list(self, kind: DomainListKind) -> list[str]:
        path = self._paths.path_for(kind)
        try:
            return load_domain_list(path)
        except PersistenceError as e:
            if self._logger is not None:
                self._logger.log_error(
                    COMPONENT,
                    f"Error loading {kind.value} domain list",
                    error=e,
                    file_path=str(path),
                )
            return []

    def _filter_out(self, names: Iterable[str]) -> None:
        names = list(names)
        if self._blocked.discard_all(names):
            self._mark_changed(DomainListKind.BLOCKED)
        if self._direct.discard_all(names):
            self._mark_changed(DomainListKind.DIRECT)

    def _is_changed(self, kind: DomainListKind) -> bool:
        if kind is DomainListKind.BLOCKED:
            return self._blocked_changed
        return self._direct_changed

    def _set_changed(self, kind: DomainListKind, value: bool) -> None:
        if kind is DomainListKind.BLOCKED:
            self._blocked_changed = value
        else:
            self._direct_changed = value

    def _mark_changed(self, kind: DomainListKind) -> None:
        with self._dirty_lock:
            self._set_changed(kind, True)

    def _debug(self, message: str, data: Optional[dict] = None) -> None:
        if self._logger is not None:
            self._logger.debug(COMPONENT, message, data)
