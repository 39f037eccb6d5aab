"""
Request target parsing.

A Target carries the host, port and registered domain of a destination the
proxy is about to connect to. The classifier only consumes the fields; this
module provides the parser used by the CLI and by tests.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

import idna

from domain_classifier.exceptions import ValidationError


# Forbidden characters in host names (control chars, spaces, special symbols)
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\;"\'<>,?/`~]'
)

# Labels that act as a second-level registry under a two-letter ccTLD,
# e.g. bbc.co.uk, example.com.cn
SECOND_LEVEL_LABELS = frozenset({"co", "com", "net", "org", "gov", "edu", "ac"})


@dataclass(frozen=True)
class Target:
    """A parsed destination: host, optional port and registered domain."""

    host: str
    port: Optional[int] = None
    domain: str = ""

    @property
    def host_port(self) -> str:
        """Host and port joined for log messages."""
        if self.port is None:
            return self.host
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def host_is_ip(self) -> bool:
        """Return True if the host is a literal IPv4 or IPv6 address."""
        return is_ip_address(self.host)


def is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def split_host_port(host_port: str) -> tuple[str, Optional[int]]:
    """
    Split ``host[:port]`` into its parts.

    Bracketed IPv6 literals (``[::1]:443``) are unwrapped; a bare IPv6 literal
    without brackets is returned whole with no port.

    Raises:
        ValidationError: If the port is not a number in 1-65535
    """
    value = host_port.strip()
    port_text = ""

    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            raise ValidationError(
                code="invalid_host",
                message="Unterminated IPv6 literal",
                details={"raw_input": host_port},
            )
        host = value[1:end]
        rest = value[end + 1:]
        if rest.startswith(":"):
            port_text = rest[1:]
    elif value.count(":") == 1:
        host, port_text = value.split(":", 1)
    else:
        host = value

    if not port_text:
        return host, None

    if not port_text.isdigit() or not 0 < int(port_text) < 65536:
        raise ValidationError(
            code="invalid_port",
            message=f"Invalid port '{port_text}'",
            details={"raw_input": host_port},
        )
    return host, int(port_text)


def normalize_host(host: str) -> str:
    """
    Convert a host to its canonical form (lowercase, IDNA-encoded).

    Raises:
        ValidationError: If the host is empty, has forbidden characters or
            cannot be IDNA-encoded
    """
    host = host.strip().rstrip(".").lower()
    if not host:
        raise ValidationError(
            code="empty_input",
            message="Host is empty",
            details={},
        )

    if is_ip_address(host):
        return host

    if FORBIDDEN_CHARS_PATTERN.search(host) or ":" in host:
        raise ValidationError(
            code="forbidden_chars",
            message="Host contains forbidden characters",
            details={"host": host},
        )

    if any(ord(c) > 127 for c in host):
        try:
            host = idna.encode(host, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code="idna_error",
                message=f"IDNA encoding failed: {e}",
                details={"host": host, "idna_error": str(e)},
            )

    return host


def registered_domain(host: str) -> str:
    """
    Return the registered domain of a host, or "" for IPs and bare host names.

    ``www.example.com`` -> ``example.com``; ``news.bbc.co.uk`` -> ``bbc.co.uk``.
    """
    if not host or is_ip_address(host):
        return ""

    labels = host.split(".")
    if len(labels) < 2:
        return ""

    if (
        len(labels) >= 3
        and len(labels[-1]) == 2
        and labels[-2] in SECOND_LEVEL_LABELS
    ):
        return ".".join(labels[-3:])

    return ".".join(labels[-2:])


def parse_target(host_port: str) -> Target:
    """
    Parse ``host[:port]`` into a Target.

    Raises:
        ValidationError: If the host or port is invalid
    """
    host, port = split_host_port(host_port)
    host = normalize_host(host)
    return Target(host=host, port=port, domain=registered_domain(host))
