# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the streaming JUnit report parser."""

from __future__ import annotations

import io

import pytest

from flakeguard.enums import EnumTestStatus
from flakeguard.errors import ReportParseError
from flakeguard.ingestion import JUnitStreamParser, parse_report_bytes, parse_report_stream
from flakeguard.ingestion.junit_parser import MAX_TEXT_BYTES, parse_float, parse_int

SAMPLE_REPORT = b"""<?xml version="1.0" encoding="UTF-8"?>
<testsuites>
  <testsuite name="api" tests="4" failures="1" errors="1" skipped="1" time="1.5"
             timestamp="2025-06-01T10:00:00" hostname="runner-1" file="tests/test_api.py">
    <properties>
      <property name="python" value="3.12"/>
    </properties>
    <testcase classname="tests.test_api.TestUsers" name="test_create" time="0.25"/>
    <testcase classname="tests.test_api.TestUsers" name="test_delete" time="0.5">
      <failure message="assert 404 == 204" type="AssertionError">Traceback line 1
line 2</failure>
    </testcase>
    <testcase classname="tests.test_api.TestUsers" name="test_login" time="0.1">
      <error type="ConnectionError">connection refused
at socket.py:120</error>
      <system-out>starting</system-out>
    </testcase>
    <testcase class="tests.test_api.TestUsers" name="test_slow" time="0">
      <skipped message="slow"/>
    </testcase>
  </testsuite>
</testsuites>
"""


# =============================================================================
# Structure
# =============================================================================


class TestSuiteParsing:
    """Suite and testcase attribute extraction."""

    def test_parses_suite_attributes(self) -> None:
        suites = parse_report_bytes(SAMPLE_REPORT, source_file="reports/api.xml")

        assert len(suites) == 1
        suite = suites[0]
        assert suite.name == "api"
        assert suite.source_file == "reports/api.xml"
        assert (suite.tests, suite.failures, suite.errors, suite.skipped) == (4, 1, 1, 1)
        assert suite.time_seconds == pytest.approx(1.5)
        assert suite.timestamp == "2025-06-01T10:00:00"
        assert suite.hostname == "runner-1"
        assert suite.file == "tests/test_api.py"
        assert suite.properties == {"python": "3.12"}

    def test_parses_case_outcomes(self) -> None:
        suite = parse_report_bytes(SAMPLE_REPORT)[0]
        by_name = {case.name: case for case in suite.test_cases}

        assert by_name["test_create"].status is EnumTestStatus.PASSED
        assert by_name["test_create"].duration_ms == 250
        assert by_name["test_delete"].status is EnumTestStatus.FAILED
        assert by_name["test_delete"].failure_message == "assert 404 == 204"
        assert by_name["test_delete"].failure_type == "AssertionError"
        assert by_name["test_delete"].stack_trace == "Traceback line 1\nline 2"
        assert by_name["test_login"].status is EnumTestStatus.ERROR
        assert by_name["test_login"].system_out == "starting"
        assert by_name["test_slow"].status is EnumTestStatus.SKIPPED

    def test_message_falls_back_to_first_body_line(self) -> None:
        suite = parse_report_bytes(SAMPLE_REPORT)[0]
        login = next(c for c in suite.test_cases if c.name == "test_login")

        assert login.failure_message == "connection refused"

    def test_class_attribute_is_accepted(self) -> None:
        suite = parse_report_bytes(SAMPLE_REPORT)[0]
        slow = next(c for c in suite.test_cases if c.name == "test_slow")

        assert slow.class_name == "tests.test_api.TestUsers"

    def test_bare_testsuite_root(self) -> None:
        suites = parse_report_bytes(
            '<testsuite name="solo"><testcase name="t1"/></testsuite>'
        )

        assert [s.name for s in suites] == ["solo"]
        assert suites[0].total_count == 1

    def test_nested_suites_are_flattened(self) -> None:
        report = (
            '<testsuites><testsuite name="outer">'
            '<testcase name="a"/>'
            '<testsuite name="inner"><testcase name="b"/></testsuite>'
            "</testsuite></testsuites>"
        )

        suites = parse_report_bytes(report)

        assert sorted(s.name for s in suites) == ["inner", "outer"]
        assert {s.name: [c.name for c in s.test_cases] for s in suites} == {
            "outer": ["a"],
            "inner": ["b"],
        }

    def test_testcase_without_name_is_skipped(self) -> None:
        suites = parse_report_bytes(
            '<testsuite><testcase classname="x"/><testcase name="ok"/></testsuite>'
        )

        assert [c.name for c in suites[0].test_cases] == ["ok"]


# =============================================================================
# Precedence and numeric attributes
# =============================================================================


class TestStatusPrecedence:
    """error > failure > skipped > passed within one testcase."""

    @pytest.mark.parametrize(
        ("markers", "expected"),
        [
            ("<skipped/><failure message='f'/>", EnumTestStatus.FAILED),
            ("<failure message='f'/><error message='e'/>", EnumTestStatus.ERROR),
            ("<error message='e'/><failure message='f'/>", EnumTestStatus.ERROR),
            ("<error message='e'/><skipped/>", EnumTestStatus.ERROR),
        ],
    )
    def test_strongest_marker_wins(self, markers: str, expected: EnumTestStatus) -> None:
        suite = parse_report_bytes(
            f'<testsuite><testcase name="t">{markers}</testcase></testsuite>'
        )[0]

        assert suite.test_cases[0].status is expected

    def test_message_comes_from_winning_marker(self) -> None:
        suite = parse_report_bytes(
            '<testsuite><testcase name="t">'
            '<error message="boom"/><failure message="assertion"/>'
            "</testcase></testsuite>"
        )[0]

        assert suite.test_cases[0].failure_message == "boom"

    def test_invalid_numbers_default_to_zero(self) -> None:
        suite = parse_report_bytes(
            '<testsuite tests="many" time="NaN">'
            '<testcase name="t" time="-3"/></testsuite>'
        )[0]

        assert suite.tests == 0
        assert suite.time_seconds == 0.0
        assert suite.test_cases[0].time_seconds == 0.0

    def test_numeric_helpers(self) -> None:
        assert parse_int("7") == 7
        assert parse_int("3.9") == 3
        assert parse_int(None) == 0
        assert parse_float("inf") == 0.0
        assert parse_float(" 1.25 ") == pytest.approx(1.25)


# =============================================================================
# Streaming, limits and malformed input
# =============================================================================


class TestStreamingAndErrors:
    """Chunked feeding, bounded text and error reporting."""

    def test_byte_by_byte_feeding_matches_single_feed(self) -> None:
        parser = JUnitStreamParser(source_file="api.xml")
        for index in range(len(SAMPLE_REPORT)):
            parser.feed(SAMPLE_REPORT[index : index + 1])

        assert parser.close() == parse_report_bytes(SAMPLE_REPORT, source_file="api.xml")

    def test_parse_report_stream_reads_in_chunks(self) -> None:
        suites = parse_report_stream(io.BytesIO(SAMPLE_REPORT), chunk_size=17)

        assert suites[0].total_count == 4

    def test_stack_trace_is_truncated(self) -> None:
        body = "x" * (MAX_TEXT_BYTES + 500)
        suite = parse_report_bytes(
            f'<testsuite><testcase name="t"><failure message="m">{body}'
            "</failure></testcase></testsuite>"
        )[0]

        trace = suite.test_cases[0].stack_trace
        assert trace is not None
        assert trace.endswith("[truncated]")
        assert len(trace) < MAX_TEXT_BYTES + 100

    def test_malformed_xml_raises_report_parse_error(self) -> None:
        with pytest.raises(ReportParseError) as exc_info:
            parse_report_bytes(b"<testsuite><testcase name='t'>", source_file="bad.xml")

        assert "bad.xml" in exc_info.value.message

    def test_unrecognized_root_is_rejected(self) -> None:
        with pytest.raises(ReportParseError, match="Unrecognized report root"):
            parse_report_bytes(b"<project><target/></project>")

    def test_empty_document_is_rejected(self) -> None:
        with pytest.raises(ReportParseError):
            parse_report_bytes(b"")

    def test_external_entities_are_not_resolved(self) -> None:
        report = (
            b'<?xml version="1.0"?>'
            b'<!DOCTYPE testsuite [<!ENTITY ext SYSTEM "file:///etc/passwd">]>'
            b'<testsuite name="s"><testcase name="t">'
            b'<failure message="m">&ext;</failure></testcase></testsuite>'
        )

        suites = parse_report_bytes(report)

        trace = suites[0].test_cases[0].stack_trace
        assert trace is None or "root:" not in trace
