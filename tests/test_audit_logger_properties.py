"""
Property-based tests for Audit Logger module.

Uses Hypothesis for property-based testing to verify output formats, level
filtering, masking and error context.
"""

import json
import threading
from io import StringIO

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from domain_classifier.audit_logger import AuditLogger
from domain_classifier.enums import LogLevel
from domain_classifier.exceptions import PersistenceError


SENSITIVE_PATTERNS = [
    'token', 'secret', 'password', 'api_key', 'auth', 'authorization',
    'credential', 'credentials', 'private_key', 'access_token', 'cookie',
]


# Strategies for generating valid test data

@st.composite
def log_level_strategy(draw) -> LogLevel:
    """Generate valid LogLevel values."""
    return draw(st.sampled_from(list(LogLevel)))


@st.composite
def component_name_strategy(draw) -> str:
    """Generate valid component names."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-"),
        min_size=1,
        max_size=50,
    ))


@st.composite
def message_strategy(draw) -> str:
    """Generate valid log messages."""
    return draw(st.text(
        alphabet=st.characters(
            whitelist_categories=('L', 'N', 'P', 'S', 'Z'),
            blacklist_characters='\x00\n\r',
        ),
        min_size=1,
        max_size=200,
    ))


@st.composite
def non_sensitive_key_strategy(draw) -> str:
    """Generate keys that are NOT sensitive."""
    key = draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"),
        min_size=1,
        max_size=20,
    ))

    # Ensure key doesn't contain any sensitive pattern
    for pattern in SENSITIVE_PATTERNS:
        assume(pattern not in key)

    return key


@st.composite
def sensitive_key_strategy(draw) -> str:
    """Generate keys that ARE sensitive."""
    base = draw(st.sampled_from(SENSITIVE_PATTERNS))

    # Optionally add prefix/suffix
    prefix = draw(st.sampled_from(['', 'my_', 'webhook_', 'x_']))
    suffix = draw(st.sampled_from(['', '_value', '_header', '_1']))

    return f"{prefix}{base}{suffix}"


@st.composite
def simple_value_strategy(draw):
    """Generate simple JSON-serializable values."""
    return draw(st.one_of(
        st.text(min_size=0, max_size=50),
        st.integers(min_value=-1000, max_value=1000),
        st.booleans(),
        st.none(),
    ))


@st.composite
def non_sensitive_data_strategy(draw) -> dict:
    """Generate data dictionaries without sensitive keys."""
    num_keys = draw(st.integers(min_value=0, max_value=5))
    data = {}
    for _ in range(num_keys):
        data[draw(non_sensitive_key_strategy())] = draw(simple_value_strategy())
    return data


class TestDualFormatProperty:
    """
    Property-based tests for dual format logging.
    """

    @given(
        level=log_level_strategy(),
        component=component_name_strategy(),
        message=message_strategy(),
        data=non_sensitive_data_strategy(),
    )
    @settings(max_examples=100)
    def test_dual_format_produces_both_outputs(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: dict,
    ) -> None:
        """
        Property 8: Log entries in dual format.

        *For any* log entry when output_format is "both", the logger SHALL produce
        both a valid JSON string and a human-readable text line.
        """
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output, level="debug")

        logger.log(level, component, message, data)

        lines = output.getvalue().split('\n')[:-1]
        assert len(lines) == 2, f"Expected 2 lines, got {len(lines)}"

        parsed_json = json.loads(lines[0])
        assert parsed_json["level"] == level.value
        assert parsed_json["component"] == component
        assert parsed_json["message"] == message
        assert parsed_json["data"] == data
        assert "timestamp" in parsed_json

        text_line = lines[1]
        assert level.value.upper() in text_line
        assert f"[{component}]" in text_line
        assert message in text_line

    @given(
        level=log_level_strategy(),
        component=component_name_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=50)
    def test_json_only_format(self, level: LogLevel, component: str, message: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, level="debug")

        entry = logger.log(level, component, message)

        lines = output.getvalue().strip().split('\n')
        assert len(lines) == 1
        assert json.loads(lines[0]) == json.loads(logger.get_json_output(entry))

    @given(
        level=log_level_strategy(),
        component=component_name_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=50)
    def test_text_only_format(self, level: LogLevel, component: str, message: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="text", output_stream=output, level="debug")

        entry = logger.log(level, component, message)

        assert output.getvalue() == logger.get_text_output(entry) + "\n"
        with pytest.raises(json.JSONDecodeError):
            json.loads(output.getvalue())

    def test_invalid_format_and_level_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuditLogger(output_format="xml")
        with pytest.raises(ValueError):
            AuditLogger(level="verbose")


class TestLevelFilteringProperty:
    """
    Property-based tests for minimum level filtering.
    """

    @given(
        minimum=log_level_strategy(),
        level=log_level_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=100)
    def test_entries_below_minimum_are_dropped(
        self,
        minimum: LogLevel,
        level: LogLevel,
        message: str,
    ) -> None:
        """
        Property 9: Level filtering.

        *For any* minimum level, an entry SHALL be recorded and written if and
        only if its severity is at least the minimum.
        """
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, level=minimum.value)

        entry = logger.log(level, "Test", message)

        if level.severity >= minimum.severity:
            assert entry is not None
            assert logger.entries == [entry]
            assert output.getvalue() != ""
        else:
            assert entry is None
            assert logger.entries == []
            assert output.getvalue() == ""

    def test_helpers_use_matching_levels(self) -> None:
        logger = AuditLogger(output_stream=StringIO(), level="debug")

        assert logger.debug("C", "d").level is LogLevel.DEBUG
        assert logger.info("C", "i").level is LogLevel.INFO
        assert logger.warn("C", "w").level is LogLevel.WARN
        assert logger.log_error("C", "e").level is LogLevel.ERROR

    def test_default_level_drops_debug(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        assert logger.debug("C", "hidden") is None
        assert logger.info("C", "shown") is not None


class TestSensitiveDataMaskingProperty:
    """
    Property-based tests for sensitive data masking.
    """

    @given(
        sensitive_key=sensitive_key_strategy(),
        sensitive_value=st.text(
            alphabet=st.sampled_from("QWXYZ"),  # Use unique chars unlikely to appear elsewhere
            min_size=5,
            max_size=20,
        ),
        level=log_level_strategy(),
        component=component_name_strategy(),
    )
    @settings(max_examples=100)
    def test_sensitive_data_masked(
        self,
        sensitive_key: str,
        sensitive_value: str,
        level: LogLevel,
        component: str,
    ) -> None:
        """
        Property 10: Sensitive data masked in logs.

        *For any* log entry data containing keys matching sensitive patterns,
        the values SHALL be replaced with "***MASKED***".
        """
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, level="debug")

        entry = logger.log(level, component, "message", {sensitive_key: sensitive_value})

        assert entry.data[sensitive_key] == "***MASKED***"
        parsed = json.loads(output.getvalue().strip())
        assert parsed["data"][sensitive_key] == "***MASKED***"
        assert sensitive_value not in json.dumps(parsed["data"])

    @given(
        non_sensitive_key=non_sensitive_key_strategy(),
        value=st.text(min_size=1, max_size=50),
    )
    @settings(max_examples=100)
    def test_non_sensitive_data_not_masked(self, non_sensitive_key: str, value: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.info("Test", "message", {non_sensitive_key: value})

        assert entry.data[non_sensitive_key] == value

    @given(
        sensitive_key=sensitive_key_strategy(),
        sensitive_value=st.text(min_size=1, max_size=50),
    )
    @settings(max_examples=100)
    def test_nested_sensitive_data_masked(self, sensitive_key: str, sensitive_value: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        data = {
            "webhook": {
                sensitive_key: sensitive_value,
                "url": "https://hooks.example.com/blocked",
            },
            "headers": [{sensitive_key: sensitive_value}],
        }
        entry = logger.info("Test", "message", data)

        assert entry.data["webhook"][sensitive_key] == "***MASKED***"
        assert entry.data["webhook"]["url"] == "https://hooks.example.com/blocked"
        assert entry.data["headers"][0][sensitive_key] == "***MASKED***"

    def test_caller_data_is_not_mutated(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        data = {"token": "abc"}

        logger.info("Test", "message", data)

        assert data == {"token": "abc"}


class TestErrorContextProperty:
    """
    Property-based tests for error context logging.
    """

    @given(
        component=component_name_strategy(),
        message=message_strategy(),
        error_message=message_strategy(),
    )
    @settings(max_examples=100)
    def test_error_logs_include_error_context(
        self,
        component: str,
        message: str,
        error_message: str,
    ) -> None:
        """
        Property 11: Error logs include full context.

        *For any* error-level log entry, the data field SHALL contain the
        error message, the error type and, if given, the file path involved.
        """
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log_error(
            component=component,
            message=message,
            error=OSError(error_message),
            file_path="/var/lib/proxy/blocked",
        )

        assert entry.level == LogLevel.ERROR
        assert entry.data["error_message"] == error_message
        assert entry.data["error_type"] == "OSError"
        assert entry.data["file_path"] == "/var/lib/proxy/blocked"
        assert "error_code" not in entry.data

    def test_structured_error_code_is_included(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        error = PersistenceError(code="io_error", message="disk full", details={})

        entry = logger.log_error("DomainClassifier", "Error storing", error=error)

        assert entry.data["error_code"] == "io_error"
        assert entry.data["error_type"] == "PersistenceError"

    def test_error_logs_with_minimal_context(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        entry = logger.log_error("Test", "Something failed")

        assert entry.data == {}

    @given(
        error_message=message_strategy(),
        additional_key=non_sensitive_key_strategy(),
        additional_value=st.text(min_size=1, max_size=30),
    )
    @settings(max_examples=100)
    def test_error_logs_preserve_additional_data(
        self,
        error_message: str,
        additional_key: str,
        additional_value: str,
    ) -> None:
        assume(additional_key not in {"error_message", "error_type", "error_code", "file_path"})
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log_error(
            component="Test",
            message="failed",
            error=ValueError(error_message),
            additional_data={additional_key: additional_value},
        )

        assert entry.data["error_type"] == "ValueError"
        assert entry.data[additional_key] == additional_value


class TestEntryRetention:
    """The in-memory entry list SHALL stay bounded and thread safe."""

    def test_oldest_entries_dropped(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        for i in range(AuditLogger.MAX_ENTRIES + 10):
            logger.info("Test", f"entry {i}")

        entries = logger.entries
        assert len(entries) == AuditLogger.MAX_ENTRIES
        assert entries[0].message == "entry 10"

        logger.clear_entries()
        assert logger.entries == []

    def test_concurrent_writers_emit_whole_lines(self) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)

        def worker(n: int) -> None:
            for i in range(50):
                logger.info("Worker", f"{n}-{i}", {"worker": n})

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = output.getvalue().strip().split("\n")
        assert len(lines) == 400
        for line in lines:
            json.loads(line)
