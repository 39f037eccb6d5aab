"""
Configuration dataclasses for the domain classifier.

This module defines the configuration structures used throughout the package:
domain list file locations, learning switches, logging and event
notification settings. Environment overrides are applied on top of file or
default configuration by ``apply_env_overrides``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from domain_classifier.enums import DomainListKind, LogLevel

# Transient blocks expire this long after first detection
TRANSIENT_BLOCK_TTL_SECONDS = 120.0

DEFAULT_FLUSH_INTERVAL_SECONDS = 300.0

ENV_PREFIX = "DOMAIN_CLASSIFIER_"


def default_config_dir() -> Path:
    """Directory holding the domain lists when none is configured."""
    return Path.home() / ".domain_classifier"


@dataclass
class DomainListPaths:
    """Locations of the four domain list files."""

    directory: Path
    blocked: Path
    direct: Path
    always_blocked: Path
    always_direct: Path

    @classmethod
    def from_dir(cls, directory: Path) -> "DomainListPaths":
        """Build the default file layout inside ``directory``."""
        directory = Path(directory)
        return cls(
            directory=directory,
            blocked=directory / DomainListKind.BLOCKED.value,
            direct=directory / DomainListKind.DIRECT.value,
            always_blocked=directory / DomainListKind.ALWAYS_BLOCKED.value,
            always_direct=directory / DomainListKind.ALWAYS_DIRECT.value,
        )

    def path_for(self, kind: DomainListKind) -> Path:
        """Return the file path backing the given list."""
        return getattr(self, kind.value)


@dataclass
class ClassifierConfig:
    """Learning behaviour of the classifier."""

    update_blocked: bool = True
    update_direct: bool = True
    transient_ttl_seconds: float = TRANSIENT_BLOCK_TTL_SECONDS
    flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class WebhookConfig:
    """Webhook receiving blocked-domain events."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 5.0


@dataclass
class NotificationConfig:
    """Event notification channels configuration."""

    webhook: Optional[WebhookConfig] = None
    simulation_mode: bool = False


@dataclass
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    paths: DomainListPaths
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)


def _bool_env(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _float_env(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def apply_env_overrides(config: SystemConfig, environ: Optional[dict] = None) -> SystemConfig:
    """
    Apply ``DOMAIN_CLASSIFIER_*`` environment variables to a configuration.

    Unset variables leave the corresponding setting alone; unparsable numbers
    and unknown log levels keep the configured value.

    Args:
        config: Configuration to update in place
        environ: Mapping to read instead of ``os.environ`` (for tests)

    Returns:
        The updated configuration
    """
    env = os.environ if environ is None else environ

    def get(name: str) -> Optional[str]:
        value = env.get(ENV_PREFIX + name)
        if value is None or not value.strip():
            return None
        return value.strip()

    directory = get("DIR")
    if directory is not None:
        config.paths = DomainListPaths.from_dir(Path(directory).expanduser())

    update_blocked = get("UPDATE_BLOCKED")
    if update_blocked is not None:
        config.classifier.update_blocked = _bool_env(update_blocked)

    update_direct = get("UPDATE_DIRECT")
    if update_direct is not None:
        config.classifier.update_direct = _bool_env(update_direct)

    ttl = get("TRANSIENT_TTL")
    if ttl is not None:
        config.classifier.transient_ttl_seconds = _float_env(
            ttl, config.classifier.transient_ttl_seconds
        )

    interval = get("FLUSH_INTERVAL")
    if interval is not None:
        config.classifier.flush_interval_seconds = _float_env(
            interval, config.classifier.flush_interval_seconds
        )

    level = get("LOG_LEVEL")
    if level is not None and level.lower() in {lv.value for lv in LogLevel}:
        config.logging.level = level.lower()

    webhook_url = get("WEBHOOK_URL")
    if webhook_url is not None:
        if config.notifications.webhook is None:
            config.notifications.webhook = WebhookConfig(url=webhook_url)
        else:
            config.notifications.webhook.url = webhook_url

    return config
