"""
Blocked-domain event notification.

When the classifier places a domain in the transient blocked set it publishes
a BlockEvent. The EventRouter hands events to its registered channels on a
single background worker so connection handlers never wait on network I/O.
Delivery failures are logged and otherwise ignored.
"""

from abc import abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import httpx

from domain_classifier.config import NotificationConfig, WebhookConfig
from domain_classifier.enums import LogLevel
from domain_classifier.exceptions import NotificationError

if TYPE_CHECKING:
    from domain_classifier.audit_logger import AuditLogger


@dataclass
class BlockEvent:
    """A domain was found unreachable directly and is now relayed."""

    domain: str
    host_port: str
    timestamp: str
    ttl_seconds: float

    @classmethod
    def now(cls, domain: str, host_port: str, ttl_seconds: float) -> "BlockEvent":
        return cls(
            domain=domain,
            host_port=host_port,
            timestamp=datetime.now(timezone.utc).isoformat(),
            ttl_seconds=ttl_seconds,
        )


@dataclass
class NotificationResult:
    """Result of delivering one event to one channel."""

    channel: str
    success: bool
    error: Optional[str] = None


@runtime_checkable
class EventChannel(Protocol):
    """Protocol defining the interface for event channels."""

    @abstractmethod
    def send(self, event: BlockEvent) -> bool:
        """
        Deliver an event.

        Returns:
            True if delivery was successful, False otherwise
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        """Return the name of this channel."""
        ...


class WebhookChannel:
    """Generic webhook channel using HTTP POST."""

    def __init__(
        self,
        config: WebhookConfig,
        simulation_mode: bool = False,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize Webhook channel.

        Args:
            config: Webhook configuration with URL and optional headers
            simulation_mode: If True, no real network requests are made
            client: HTTP client to use (one is created when omitted)
        """
        self._url = config.url
        self._headers = config.headers.copy()
        self._timeout = config.timeout_seconds
        self._simulation_mode = simulation_mode
        self._client = client

    def send(self, event: BlockEvent) -> bool:
        """
        Send the event via HTTP POST.

        Raises:
            NotificationError: If the request cannot be made
        """
        if self._simulation_mode:
            return True

        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)

        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)

        try:
            response = self._client.post(self._url, json=asdict(event), headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(
                code="network_error",
                message=f"Webhook request failed: {e}",
                details={"url": self._url},
            )
        return 200 <= response.status_code < 300

    def get_name(self) -> str:
        return "webhook"

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class EventRouter:
    """
    Fans events out to registered channels on a background worker thread.

    ``publish`` returns immediately; ``deliver`` sends synchronously and is
    what the worker runs.
    """

    def __init__(self, logger: Optional["AuditLogger"] = None) -> None:
        self._channels: list[EventChannel] = []
        self._logger = logger
        self._executor: Optional[ThreadPoolExecutor] = None

    def register_channel(self, channel: EventChannel) -> None:
        self._channels.append(channel)

    def unregister_channel(self, channel_name: str) -> bool:
        """
        Unregister a channel by name.

        Returns:
            True if channel was found and removed, False otherwise
        """
        for i, channel in enumerate(self._channels):
            if channel.get_name() == channel_name:
                self._channels.pop(i)
                return True
        return False

    @property
    def channels(self) -> list[EventChannel]:
        """Get list of registered channels."""
        return self._channels.copy()

    def publish(self, event: BlockEvent) -> Optional[Future]:
        """
        Queue an event for delivery to every channel.

        Returns:
            Future resolving to the delivery results, or None when no
            channel is registered
        """
        if not self._channels:
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="event-router"
            )
        return self._executor.submit(self.deliver, event)

    def deliver(self, event: BlockEvent) -> list[NotificationResult]:
        """Send an event to every channel now, logging failures."""
        results = []
        for channel in self._channels:
            name = channel.get_name()
            try:
                if channel.send(event):
                    results.append(NotificationResult(channel=name, success=True))
                    continue
                error = "Channel returned failure"
            except Exception as e:
                error = str(e)

            results.append(NotificationResult(channel=name, success=False, error=error))
            if self._logger is not None:
                self._logger.log(
                    level=LogLevel.ERROR,
                    component="EventRouter",
                    message=f"Event delivery failed for channel '{name}'",
                    data={"channel": name, "domain": event.domain, "error": error},
                )
        return results

    def close(self) -> None:
        """Wait for queued events, then release channel resources."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        for channel in self._channels:
            close = getattr(channel, "close", None)
            if callable(close):
                close()


def create_event_router(
    config: NotificationConfig,
    logger: Optional["AuditLogger"] = None,
) -> Optional[EventRouter]:
    """
    Create an event router from configuration.

    Returns:
        EventRouter if any channel is configured, None otherwise
    """
    if config.webhook is None:
        return None

    router = EventRouter(logger=logger)
    router.register_channel(
        WebhookChannel(config=config.webhook, simulation_mode=config.simulation_mode)
    )
    return router
