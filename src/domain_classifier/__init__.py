"""
Domain Classifier - learns which destinations a proxy can reach directly.

This package decides per request whether a destination domain is reached
directly or relayed through the proxy, learns that classification from
connection outcomes, and persists what it learned to plain domain list files.
"""

__version__ = "0.1.0"
__author__ = "Domain Classifier Team"

from domain_classifier.exceptions import (
    DomainClassifierError,
    ValidationError,
    PersistenceError,
    ConfigError,
    NotificationError,
)
from domain_classifier.enums import (
    Route,
    RecordOutcome,
    DomainListKind,
    LogLevel,
)
from domain_classifier.config import (
    TRANSIENT_BLOCK_TTL_SECONDS,
    DomainListPaths,
    ClassifierConfig,
    LoggingConfig,
    WebhookConfig,
    NotificationConfig,
    SystemConfig,
    apply_env_overrides,
)
from domain_classifier.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_classifier.target import (
    Target,
    parse_target,
    registered_domain,
)
from domain_classifier.domain_set import (
    ConcurrentDomainSet,
    ReadWriteLock,
)
from domain_classifier.expiring_set import (
    ExpiringDomainSet,
)
from domain_classifier.persistence import (
    load_domain_list,
    store_domain_list,
)
from domain_classifier.notifications import (
    BlockEvent,
    NotificationResult,
    EventChannel,
    WebhookChannel,
    EventRouter,
    create_event_router,
)
from domain_classifier.classifier import (
    DomainClassifier,
)
from domain_classifier.flusher import (
    PeriodicFlusher,
)
from domain_classifier.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "DomainClassifierError",
    "ValidationError",
    "PersistenceError",
    "ConfigError",
    "NotificationError",
    # Enums
    "Route",
    "RecordOutcome",
    "DomainListKind",
    "LogLevel",
    # Configuration
    "TRANSIENT_BLOCK_TTL_SECONDS",
    "DomainListPaths",
    "ClassifierConfig",
    "LoggingConfig",
    "WebhookConfig",
    "NotificationConfig",
    "SystemConfig",
    "apply_env_overrides",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Targets
    "Target",
    "parse_target",
    "registered_domain",
    # Domain sets
    "ConcurrentDomainSet",
    "ReadWriteLock",
    "ExpiringDomainSet",
    # Persistence
    "load_domain_list",
    "store_domain_list",
    # Notifications
    "BlockEvent",
    "NotificationResult",
    "EventChannel",
    "WebhookChannel",
    "EventRouter",
    "create_event_router",
    # Classifier
    "DomainClassifier",
    "PeriodicFlusher",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
