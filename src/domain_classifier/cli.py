"""
Command-line interface for the domain classifier.

This module provides the main CLI entry point with commands for:
- lookup: Show how hosts would be routed
- record-blocked / record-direct: Record connection outcomes and persist them
- show: Print one of the domain lists
- config: Configuration management
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from domain_classifier import __version__
from domain_classifier.audit_logger import AuditLogger
from domain_classifier.classifier import DomainClassifier
from domain_classifier.config import (
    ClassifierConfig,
    DomainListPaths,
    LoggingConfig,
    NotificationConfig,
    SystemConfig,
    WebhookConfig,
    apply_env_overrides,
    default_config_dir,
)
from domain_classifier.enums import DomainListKind, LogLevel, RecordOutcome
from domain_classifier.exceptions import ConfigError, ValidationError
from domain_classifier.notifications import create_event_router
from domain_classifier.target import parse_target


def default_config_path() -> Path:
    return default_config_dir() / "config.json"


def create_default_config(directory: Optional[Path] = None) -> SystemConfig:
    """
    Create a default configuration.

    Args:
        directory: Directory for the domain lists (defaults to ~/.domain_classifier)

    Returns:
        SystemConfig with default settings
    """
    if directory is None:
        directory = default_config_dir()

    return SystemConfig(
        paths=DomainListPaths.from_dir(directory),
        classifier=ClassifierConfig(),
        logging=LoggingConfig(),
        notifications=NotificationConfig(),
    )


def _bool_field(section: dict, key: str, default: bool, config_path: Path) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(
            code="invalid_type",
            message=f"{key} must be true or false, got {value!r}",
            details={"config_path": str(config_path), "key": key},
        )
    return value


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Individual list paths may be given under "paths"; missing ones default to
    the standard names inside "directory".

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        paths_data = data.get("paths", {})
        directory = paths_data.get("directory")
        paths = DomainListPaths.from_dir(
            Path(directory).expanduser() if directory else default_config_dir()
        )
        for kind in DomainListKind:
            if paths_data.get(kind.value):
                setattr(paths, kind.value, Path(paths_data[kind.value]).expanduser())

        classifier_data = data.get("classifier", {})
        defaults = ClassifierConfig()
        classifier = ClassifierConfig(
            update_blocked=_bool_field(
                classifier_data, "update_blocked", defaults.update_blocked, config_path
            ),
            update_direct=_bool_field(
                classifier_data, "update_direct", defaults.update_direct, config_path
            ),
            transient_ttl_seconds=classifier_data.get(
                "transient_ttl_seconds", defaults.transient_ttl_seconds
            ),
            flush_interval_seconds=classifier_data.get(
                "flush_interval_seconds", defaults.flush_interval_seconds
            ),
        )
        if classifier.transient_ttl_seconds <= 0 or classifier.flush_interval_seconds <= 0:
            raise ConfigError(
                code="invalid_interval",
                message="intervals must be positive",
                details={"config_path": str(config_path)},
            )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )
        if logging_config.level not in {level.value for level in LogLevel} or (
            logging_config.output_format not in ("json", "text", "both")
        ):
            raise ConfigError(
                code="invalid_logging",
                message=f"invalid logging settings: {logging_config.level}/{logging_config.output_format}",
                details={"config_path": str(config_path)},
            )

        notifications_data = data.get("notifications", {})
        notifications = NotificationConfig(
            simulation_mode=_bool_field(
                notifications_data, "simulation_mode", False, config_path
            ),
        )
        webhook_data = notifications_data.get("webhook", {})
        if _bool_field(webhook_data, "enabled", False, config_path) and webhook_data.get("url"):
            notifications.webhook = WebhookConfig(
                url=webhook_data["url"],
                headers=webhook_data.get("headers", {}),
                timeout_seconds=webhook_data.get("timeout_seconds", 5.0),
            )

        return SystemConfig(
            paths=paths,
            classifier=classifier,
            logging=logging_config,
            notifications=notifications,
        )

    except ConfigError as e:
        print(f"Error loading config: {e.message}", file=sys.stderr)
        return None
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        webhook = config.notifications.webhook
        data = {
            "paths": {
                "directory": str(config.paths.directory),
                **{
                    kind.value: str(config.paths.path_for(kind))
                    for kind in DomainListKind
                },
            },
            "classifier": {
                "update_blocked": config.classifier.update_blocked,
                "update_direct": config.classifier.update_direct,
                "transient_ttl_seconds": config.classifier.transient_ttl_seconds,
                "flush_interval_seconds": config.classifier.flush_interval_seconds,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "notifications": {
                "simulation_mode": config.notifications.simulation_mode,
                "webhook": {
                    "enabled": True,
                    "url": webhook.url,
                    "headers": webhook.headers,
                    "timeout_seconds": webhook.timeout_seconds,
                } if webhook else {"enabled": False},
            },
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load the configuration named on the command line, or the default one."""
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = load_config_from_file(default_config_path()) or create_default_config()

    return apply_env_overrides(config)


def build_classifier(config: SystemConfig, verbose: bool = False) -> DomainClassifier:
    """Create and load a classifier wired to a logger and event router."""
    logger = AuditLogger(
        output_format=config.logging.output_format,
        level="debug" if verbose else config.logging.level,
    )
    classifier = DomainClassifier(
        config=config.classifier,
        paths=config.paths,
        logger=logger,
        notifier=create_event_router(config.notifications, logger),
    )
    classifier.load()
    return classifier


def cmd_lookup(args: argparse.Namespace) -> int:
    """Handle the 'lookup' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    classifier = build_classifier(config, verbose=args.verbose)
    exit_code = 0
    for host in args.hosts:
        try:
            target = parse_target(host)
        except ValidationError as e:
            print(f"{host}: error: {e.message}", file=sys.stderr)
            exit_code = 1
            continue
        print(f"{target.host_port}: {classifier.classify(target).value}")
    return exit_code


def _cmd_record(args: argparse.Namespace, blocked: bool) -> int:
    config = resolve_config(args)
    if config is None:
        return 1

    classifier = build_classifier(config, verbose=args.verbose)
    record = classifier.record_blocked if blocked else classifier.record_direct
    exit_code = 0
    for host in args.hosts:
        try:
            target = parse_target(host)
        except ValidationError as e:
            print(f"{host}: error: {e.message}", file=sys.stderr)
            exit_code = 1
            continue
        outcome = record(target)
        print(f"{target.host_port}: {outcome.value}")
        if outcome is RecordOutcome.RECORDED_TRANSIENT:
            print("  (blocked list updates are off; not persisted)")

    classifier.close()
    if classifier.notifier is not None:
        classifier.notifier.close()

    settings = classifier.config
    if (settings.update_blocked and classifier.blocked_changed) or (
        settings.update_direct and classifier.direct_changed
    ):
        print("Error: could not store domain lists", file=sys.stderr)
        return 1
    return exit_code


def cmd_record_blocked(args: argparse.Namespace) -> int:
    """Handle the 'record-blocked' command."""
    return _cmd_record(args, blocked=True)


def cmd_record_direct(args: argparse.Namespace) -> int:
    """Handle the 'record-direct' command."""
    return _cmd_record(args, blocked=False)


def cmd_show(args: argparse.Namespace) -> int:
    """Handle the 'show' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    classifier = build_classifier(config, verbose=args.verbose)
    for name in classifier.snapshot(DomainListKind(args.list)):
        print(name)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else default_config_path()

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  List directory: {config.paths.directory}")
        print(f"  Update blocked list: {config.classifier.update_blocked}")
        print(f"  Update direct list: {config.classifier.update_direct}")
        print(f"  Transient TTL: {config.classifier.transient_ttl_seconds}s")
        print(f"  Flush interval: {config.classifier.flush_interval_seconds}s")
        print(f"  Log level: {config.logging.level}")
        print(f"  Webhook: {'yes' if config.notifications.webhook else 'no'}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config()
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-classifier",
        description="Classify proxy destinations as direct or blocked",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    lookup_parser = subparsers.add_parser(
        "lookup",
        help="Show whether hosts are reached directly or through the proxy",
    )
    lookup_parser.add_argument("hosts", nargs="+", help="Hosts as host[:port]")
    _add_common_arguments(lookup_parser)
    lookup_parser.set_defaults(func=cmd_lookup)

    blocked_parser = subparsers.add_parser(
        "record-blocked",
        help="Record failed direct connections and persist the lists",
    )
    blocked_parser.add_argument("hosts", nargs="+", help="Hosts as host[:port]")
    _add_common_arguments(blocked_parser)
    blocked_parser.set_defaults(func=cmd_record_blocked)

    direct_parser = subparsers.add_parser(
        "record-direct",
        help="Record successful direct connections and persist the lists",
    )
    direct_parser.add_argument("hosts", nargs="+", help="Hosts as host[:port]")
    _add_common_arguments(direct_parser)
    direct_parser.set_defaults(func=cmd_record_direct)

    show_parser = subparsers.add_parser(
        "show",
        help="Print the contents of a domain list",
    )
    show_parser.add_argument(
        "list",
        choices=[kind.value for kind in DomainListKind],
        help="Domain list to print",
    )
    _add_common_arguments(show_parser)
    show_parser.set_defaults(func=cmd_show)

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
