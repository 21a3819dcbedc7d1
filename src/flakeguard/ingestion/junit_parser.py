# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Streaming JUnit XML report parser.

Reports are fed to an incremental SAX parser in chunks, so a report is never
held in memory as a whole. Parser state (suite stack, current test case,
bounded text buffer) lives in an explicit ``_ParserState`` object owned by
the content handler.

Supported structure::

    <testsuites>                      (optional root)
      <testsuite name tests failures errors skipped time timestamp hostname file>
        <properties><property name value/></properties>
        <testcase name classname|class time file>
          <failure message type>stack</failure>
          <error message type>stack</error>
          <skipped message/>
          <system-out>...</system-out>
          <system-err>...</system-err>
        </testcase>
        <testsuite>...</testsuite>    (nested suites are flattened)
      </testsuite>
    </testsuites>

Outcome precedence within a testcase is error > failure > skipped > passed.
Numeric attributes that fail to parse default to zero.

Example:
    >>> parser = JUnitStreamParser(source_file="reports/unit.xml")
    >>> for chunk in iter(lambda: stream.read(65536), b""):
    ...     parser.feed(chunk)
    >>> suites = parser.close()
"""

from __future__ import annotations

import logging
import math
import xml.sax
from dataclasses import dataclass, field
from typing import BinaryIO
from xml.sax.handler import (
    ContentHandler,
    feature_external_ges,
    feature_external_pes,
    feature_namespaces,
)
from xml.sax.xmlreader import AttributesImpl, IncrementalParser

from flakeguard.enums import EnumTestStatus
from flakeguard.errors import ReportParseError
from flakeguard.models import ModelParsedTestCase, ModelParsedTestSuite

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES: int = 64 * 1024
_DEFAULT_CHUNK_SIZE: int = 64 * 1024
_MAX_MESSAGE_LENGTH: int = 1000
_TRUNCATION_MARKER: str = "\n...[truncated]"

_MARKER_STATUS: dict[str, EnumTestStatus] = {
    "failure": EnumTestStatus.FAILED,
    "error": EnumTestStatus.ERROR,
    "skipped": EnumTestStatus.SKIPPED,
}
_CAPTURED_CASE_TEXT: frozenset[str] = frozenset(
    {"failure", "error", "system-out", "system-err"}
)


def parse_int(value: str | None) -> int:
    """Parse a non-negative integer attribute, 0 when absent or invalid."""
    if value is None:
        return 0
    try:
        parsed = int(value.strip())
    except ValueError:
        parsed = int(parse_float(value))
    return max(parsed, 0)


def parse_float(value: str | None) -> float:
    """Parse a non-negative finite float attribute, 0.0 when absent or invalid."""
    if value is None:
        return 0.0
    try:
        parsed = float(value.strip())
    except ValueError:
        return 0.0
    if not math.isfinite(parsed) or parsed < 0:
        return 0.0
    return parsed


@dataclass
class _TextBuffer:
    """Bounded accumulator for element text."""

    limit: int = MAX_TEXT_BYTES
    parts: list[str] = field(default_factory=list)
    size: int = 0
    truncated: bool = False

    def append(self, text: str) -> None:
        if self.truncated:
            return
        remaining = self.limit - self.size
        if len(text) > remaining:
            self.parts.append(text[:remaining])
            self.size = self.limit
            self.truncated = True
            return
        self.parts.append(text)
        self.size += len(text)

    def value(self) -> str:
        text = "".join(self.parts)
        return text + _TRUNCATION_MARKER if self.truncated else text


@dataclass
class _CaseBuilder:
    name: str
    class_name: str
    time_seconds: float
    file: str | None
    status: EnumTestStatus = EnumTestStatus.PASSED
    failure_message: str | None = None
    failure_type: str | None = None
    stack_trace: str | None = None
    system_out: str | None = None
    system_err: str | None = None

    def mark(self, status: EnumTestStatus) -> bool:
        """Apply a marker; True when it takes precedence over the current status."""
        if status.precedence > self.status.precedence:
            self.status = status
            return True
        return False

    def build(self) -> ModelParsedTestCase:
        return ModelParsedTestCase(
            name=self.name,
            class_name=self.class_name,
            status=self.status,
            time_seconds=self.time_seconds,
            file=self.file,
            failure_message=self.failure_message,
            failure_type=self.failure_type,
            stack_trace=self.stack_trace,
            system_out=self.system_out,
            system_err=self.system_err,
        )


@dataclass
class _SuiteBuilder:
    attributes: dict[str, str]
    properties: dict[str, str] = field(default_factory=dict)
    cases: list[ModelParsedTestCase] = field(default_factory=list)

    def build(self, source_file: str) -> ModelParsedTestSuite:
        attrs = self.attributes
        return ModelParsedTestSuite(
            name=attrs.get("name", ""),
            source_file=source_file,
            tests=parse_int(attrs.get("tests")),
            failures=parse_int(attrs.get("failures")),
            errors=parse_int(attrs.get("errors")),
            skipped=parse_int(attrs.get("skipped") or attrs.get("disabled")),
            time_seconds=parse_float(attrs.get("time")),
            timestamp=attrs.get("timestamp"),
            hostname=attrs.get("hostname"),
            file=attrs.get("file"),
            properties=self.properties,
            test_cases=tuple(self.cases),
        )


@dataclass
class _ParserState:
    """Mutable state of one report parse.

    Attributes:
        source_file: Archive entry name recorded on every suite
        root_seen: Whether the root element has been validated
        suite_stack: Open <testsuite> elements, innermost last
        case: Open <testcase>, if any
        capture: Name of the element whose text is being captured
        text: Buffer for the captured element's text
        pending_marker: Attributes of the open failure/error element
        suites: Completed suites in document order of their closing tags
    """

    source_file: str
    root_seen: bool = False
    suite_stack: list[_SuiteBuilder] = field(default_factory=list)
    case: _CaseBuilder | None = None
    capture: str | None = None
    text: _TextBuffer = field(default_factory=_TextBuffer)
    pending_marker: dict[str, str] | None = None
    suites: list[ModelParsedTestSuite] = field(default_factory=list)


class _JUnitContentHandler(ContentHandler):
    """SAX callbacks translating JUnit elements into parser state transitions."""

    def __init__(self, state: _ParserState) -> None:
        super().__init__()
        self.state = state

    def startElement(self, name: str, attrs: AttributesImpl) -> None:  # noqa: N802
        state = self.state
        attributes = dict(attrs.items())

        if not state.root_seen:
            state.root_seen = True
            if name not in ("testsuites", "testsuite"):
                raise ReportParseError(
                    f"Unrecognized report root element <{name}> in {state.source_file}",
                    source_file=state.source_file,
                )

        if name == "testsuite":
            state.suite_stack.append(_SuiteBuilder(attributes=attributes))
        elif name == "property" and state.suite_stack and state.case is None:
            prop_name = attributes.get("name")
            if prop_name:
                state.suite_stack[-1].properties[prop_name] = attributes.get("value", "")
        elif name == "testcase" and state.suite_stack:
            state.case = _CaseBuilder(
                name=attributes.get("name", ""),
                class_name=attributes.get("classname") or attributes.get("class", ""),
                time_seconds=parse_float(attributes.get("time")),
                file=attributes.get("file"),
            )
        elif state.case is not None:
            status = _MARKER_STATUS.get(name)
            if status is not None:
                takes_precedence = state.case.mark(status)
                if status is not EnumTestStatus.SKIPPED and takes_precedence:
                    state.pending_marker = attributes
            if name in _CAPTURED_CASE_TEXT and state.capture is None:
                state.capture = name
                state.text = _TextBuffer()

    def characters(self, content: str) -> None:
        if self.state.capture is not None:
            self.state.text.append(content)

    def endElement(self, name: str) -> None:  # noqa: N802
        state = self.state

        if state.capture == name:
            self._finish_capture(name)
            return

        if name == "testcase" and state.case is not None:
            if state.case.name:
                state.suite_stack[-1].cases.append(state.case.build())
            else:
                logger.debug(
                    "Skipping testcase without name",
                    extra={"source_file": state.source_file},
                )
            state.case = None
        elif name == "testsuite" and state.suite_stack:
            suite = state.suite_stack.pop()
            state.suites.append(suite.build(state.source_file))

    def _finish_capture(self, name: str) -> None:
        state = self.state
        case = state.case
        text = state.text.value().strip()
        state.capture = None
        state.text = _TextBuffer()
        if case is None:
            return

        if name == "system-out":
            case.system_out = text or None
        elif name == "system-err":
            case.system_err = text or None
        elif state.pending_marker is not None:
            marker = state.pending_marker
            message = marker.get("message") or _first_line(text)
            case.failure_message = message[:_MAX_MESSAGE_LENGTH] if message else None
            case.failure_type = marker.get("type")
            case.stack_trace = text or None
        state.pending_marker = None


def _first_line(text: str) -> str | None:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return None


class JUnitStreamParser:
    """Incremental JUnit report parser for one report file.

    Feed raw bytes in any chunking with ``feed`` and call ``close`` once
    to obtain the parsed suites.

    Raises:
        ReportParseError: From ``feed`` or ``close`` when the document is
            not well-formed XML or not a JUnit report.
    """

    def __init__(self, source_file: str = "") -> None:
        self._state = _ParserState(source_file=source_file)
        parser = xml.sax.make_parser()
        if not isinstance(parser, IncrementalParser):
            raise ReportParseError("SAX parser does not support incremental parsing")
        parser.setFeature(feature_namespaces, False)
        parser.setFeature(feature_external_ges, False)
        parser.setFeature(feature_external_pes, False)
        parser.setContentHandler(_JUnitContentHandler(self._state))
        self._parser: IncrementalParser = parser
        self._closed = False

    @property
    def source_file(self) -> str:
        return self._state.source_file

    def feed(self, chunk: bytes) -> None:
        try:
            self._parser.feed(chunk)
        except xml.sax.SAXException as e:
            raise ReportParseError(
                f"Malformed XML in {self.source_file}: {e}",
                source_file=self.source_file,
            ) from e

    def close(self) -> list[ModelParsedTestSuite]:
        if self._closed:
            return list(self._state.suites)
        self._closed = True
        try:
            self._parser.close()
        except xml.sax.SAXException as e:
            raise ReportParseError(
                f"Malformed XML in {self.source_file}: {e}",
                source_file=self.source_file,
            ) from e
        if not self._state.root_seen:
            raise ReportParseError(
                f"Empty report {self.source_file}",
                source_file=self.source_file,
            )
        return list(self._state.suites)


def parse_report_stream(
    stream: BinaryIO,
    source_file: str = "",
    chunk_size: int = _DEFAULT_CHUNK_SIZE,
) -> list[ModelParsedTestSuite]:
    """Parse one report from a binary stream, reading it in chunks."""
    parser = JUnitStreamParser(source_file=source_file)
    while chunk := stream.read(chunk_size):
        parser.feed(chunk)
    return parser.close()


def parse_report_bytes(data: bytes | str, source_file: str = "") -> list[ModelParsedTestSuite]:
    """Parse one in-memory report. Intended for small documents and tests."""
    parser = JUnitStreamParser(source_file=source_file)
    parser.feed(data.encode("utf-8") if isinstance(data, str) else data)
    return parser.close()


__all__: list[str] = [
    "MAX_TEXT_BYTES",
    "JUnitStreamParser",
    "parse_float",
    "parse_int",
    "parse_report_bytes",
    "parse_report_stream",
]
