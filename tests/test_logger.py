"""Property-based tests for structured logging."""

import json
import sys
from io import StringIO

from hypothesis import given
from hypothesis import strategies as st

from src.utils.logger import StructuredLogger
from src.utils.trace_context import clear_trace, create_trace


def _capture(callable_, *args, **kwargs) -> dict:
    captured_output = StringIO()
    original_stdout = sys.stdout
    sys.stdout = captured_output
    try:
        callable_(*args, **kwargs)
    finally:
        sys.stdout = original_stdout
    return json.loads(captured_output.getvalue().strip())


class TestLoggerJSONFormat:
    """Tests for JSON log format compliance."""

    @given(
        level=st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
        message=st.text(min_size=1),
        context=st.dictionaries(
            st.text(min_size=1, max_size=20),
            st.one_of(st.text(), st.integers(), st.booleans()),
            max_size=5,
        ),
    )
    def test_log_entries_have_required_fields(self, level, message, context):
        """
        **Feature: token-signals, Property 7: Log entries have required fields**

        For any log entry written, the output is valid JSON containing
        timestamp, level, component and message fields.
        """
        clear_trace()
        logger = StructuredLogger("test_component")

        log_entry = _capture(logger.log, level, message, context or None)

        assert log_entry["level"] == level
        assert log_entry["component"] == "test_component"
        assert log_entry["message"] == message
        assert log_entry["timestamp"].endswith("Z")
        if context:
            assert log_entry["context"] == context
        else:
            assert "context" not in log_entry

    def test_unknown_level_is_logged_as_info(self):
        log_entry = _capture(StructuredLogger("c").log, "verbose", "hello")
        assert log_entry["level"] == "INFO"

    def test_exception_details_are_included(self):
        logger = StructuredLogger("MarketDataService")
        try:
            raise ValueError("bad payload")
        except ValueError as e:
            log_entry = _capture(logger.error, "Fetch failed", {"source": "prices"}, e)

        assert log_entry["exception"]["type"] == "ValueError"
        assert log_entry["exception"]["message"] == "bad payload"
        assert "Traceback" in log_entry["exception"]["stack_trace"]

    def test_warning_accepts_exception(self):
        log_entry = _capture(
            StructuredLogger("RefreshOrchestrator").warning,
            "Probe failed",
            exception=RuntimeError("offline"),
        )
        assert log_entry["level"] == "WARNING"
        assert log_entry["exception"]["type"] == "RuntimeError"

    def test_non_json_values_are_stringified(self):
        log_entry = _capture(StructuredLogger("c").info, "odd", {"value": {1, 2}})
        assert isinstance(log_entry["context"]["value"], str)


class TestLoggerTraceIds:
    """Tests for trace id propagation into log entries."""

    def test_active_trace_is_added_to_context(self):
        trace_id = create_trace()
        try:
            log_entry = _capture(StructuredLogger("c").info, "tick", {"seq": 1})
        finally:
            clear_trace()

        assert log_entry["context"] == {"seq": 1, "trace_id": trace_id}

    def test_explicit_trace_id_wins(self):
        create_trace()
        try:
            log_entry = _capture(StructuredLogger("c").info, "tick", {"trace_id": "given"})
        finally:
            clear_trace()

        assert log_entry["context"]["trace_id"] == "given"

    def test_no_trace_no_context(self):
        clear_trace()
        log_entry = _capture(StructuredLogger("c").info, "tick")
        assert "context" not in log_entry


class TestLoggerFileOutput:
    """Tests for the optional log file."""

    def test_entries_are_appended_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "signals.log"
        logger = StructuredLogger("c", str(log_file))

        _capture(logger.info, "first")
        _capture(logger.info, "second")

        lines = log_file.read_text().splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["first", "second"]
