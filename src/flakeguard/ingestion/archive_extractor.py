# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Streaming archive extraction into parsed test suites.

Archives come from CI vendors and may be attacker-controlled, so extraction
never writes entries to disk and never decompresses an entry fully into
memory: each report entry is read in fixed-size chunks straight into an
incremental JUnit parser.

Supported containers (detected by magic bytes):
    - ZIP (the GitHub Actions artifact format)
    - TAR, optionally gzip/bzip2/xz compressed
    - A bare XML report

Limits:
    - max_entry_bytes: an entry exceeding this many decompressed bytes is
      skipped with a warning
    - max_total_bytes: exceeding this across the archive aborts the artifact
    - max_entries: more report entries than this aborts the artifact

Failure semantics:
    - A malformed report entry is skipped and recorded as a warning.
    - A malformed or oversized archive raises ArchiveExtractionError, which
      aborts only the artifact being processed.
"""

from __future__ import annotations

import logging
import lzma
import tarfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from uuid import UUID

from flakeguard.enums import EnumErrorCode, EnumInfraTransportType
from flakeguard.errors import (
    ArchiveExtractionError,
    ModelInfraErrorContext,
    ReportParseError,
)
from flakeguard.ingestion.junit_parser import JUnitStreamParser
from flakeguard.models import ModelParsedTestSuite, ModelReportParseResult

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRY_BYTES: int = 50 * 1024 * 1024
_DEFAULT_MAX_TOTAL_BYTES: int = 500 * 1024 * 1024
_DEFAULT_MAX_ENTRIES: int = 10_000
_DEFAULT_CHUNK_SIZE: int = 64 * 1024

_ZIP_MAGIC: tuple[bytes, ...] = (b"PK\x03\x04", b"PK\x05\x06")
_XML_LEADS: tuple[bytes, ...] = (b"<", b"\xef\xbb\xbf<")
_SKIPPED_PREFIXES: tuple[str, ...] = ("__MACOSX/",)


class _EntryTooLargeError(Exception):
    """Internal signal that one entry exceeded the per-entry cap."""


def is_report_entry(name: str) -> bool:
    """True for ``.xml`` entries outside macOS resource-fork folders."""
    normalized = name.replace("\\", "/")
    if normalized.startswith(_SKIPPED_PREFIXES) or "/__MACOSX/" in normalized:
        return False
    path = PurePosixPath(normalized)
    if path.name.startswith("._"):
        return False
    return path.suffix.lower() == ".xml"


class ArchiveExtractor:
    """Extracts report entries from one archive and parses them.

    Instances hold only limits and may be shared across threads; per-archive
    byte accounting lives in ``_ExtractionRun``.
    """

    def __init__(
        self,
        max_entry_bytes: int = _DEFAULT_MAX_ENTRY_BYTES,
        max_total_bytes: int = _DEFAULT_MAX_TOTAL_BYTES,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.max_entry_bytes = max_entry_bytes
        self.max_total_bytes = max_total_bytes
        self.max_entries = max_entries
        self.chunk_size = chunk_size

    def extract(
        self,
        archive_path: Path,
        correlation_id: UUID | None = None,
    ) -> ModelReportParseResult:
        """Parse every report entry of the archive at ``archive_path``.

        Args:
            archive_path: Downloaded archive on transient local storage
            correlation_id: Job correlation ID for logs and error context

        Returns:
            Parsed suites plus one warning per skipped entry.

        Raises:
            ArchiveExtractionError: If the archive is unreadable, of an
                unknown format, or exceeds the total size/entry caps.
        """
        context = ModelInfraErrorContext(
            transport_type=EnumInfraTransportType.FILESYSTEM,
            operation="extract_archive",
            target_name=archive_path.name,
            correlation_id=correlation_id,
        )
        run = _ExtractionRun(self, context)

        try:
            with archive_path.open("rb") as handle:
                head = handle.read(8)
                handle.seek(0)
                if head.startswith(_ZIP_MAGIC):
                    run.extract_zip(handle)
                elif head.lstrip().startswith(_XML_LEADS):
                    run.parse_entry(handle, archive_path.name)
                else:
                    run.extract_tar(handle)
        except ArchiveExtractionError:
            raise
        except (
            zipfile.BadZipFile,
            tarfile.TarError,
            lzma.LZMAError,
            zlib.error,
            EOFError,
        ) as e:
            raise ArchiveExtractionError(
                f"Malformed archive {archive_path.name}: {type(e).__name__}",
                context=context,
            ) from e
        except (NotImplementedError, OSError) as e:
            raise ArchiveExtractionError(
                f"Unreadable archive {archive_path.name}: {type(e).__name__}",
                context=context,
            ) from e

        result = run.result()
        logger.debug(
            "Archive extracted",
            extra={
                "archive": archive_path.name,
                "files_parsed": result.files_parsed,
                "files_skipped": result.files_skipped,
                "total_tests": result.total_tests,
                "correlation_id": str(correlation_id) if correlation_id else None,
            },
        )
        return result


class _ExtractionRun:
    """Byte budget and accumulated output for one archive."""

    def __init__(self, extractor: ArchiveExtractor, context: ModelInfraErrorContext) -> None:
        self._extractor = extractor
        self._context = context
        self._total_bytes = 0
        self._entries = 0
        self._suites: list[ModelParsedTestSuite] = []
        self._warnings: list[str] = []
        self._files_parsed = 0

    def result(self) -> ModelReportParseResult:
        return ModelReportParseResult(
            suites=tuple(self._suites),
            files_parsed=self._files_parsed,
            files_skipped=len(self._warnings),
            warnings=tuple(self._warnings),
        )

    def extract_zip(self, handle: BinaryIO) -> None:
        with zipfile.ZipFile(handle) as archive:
            for info in archive.infolist():
                if info.is_dir() or not is_report_entry(info.filename):
                    continue
                if info.file_size > self._extractor.max_entry_bytes:
                    self._skip_oversized(info.filename)
                    continue
                with archive.open(info) as stream:
                    self.parse_entry(stream, info.filename)

    def extract_tar(self, handle: BinaryIO) -> None:
        with tarfile.open(fileobj=handle, mode="r|*") as archive:
            for member in archive:
                if not member.isfile() or not is_report_entry(member.name):
                    continue
                if member.size > self._extractor.max_entry_bytes:
                    self._skip_oversized(member.name)
                    continue
                stream = archive.extractfile(member)
                if stream is None:
                    continue
                with stream:
                    self.parse_entry(stream, member.name)

    def parse_entry(self, stream: BinaryIO, name: str) -> None:
        """Stream one report entry into the parser, applying byte caps."""
        self._entries += 1
        if self._entries > self._extractor.max_entries:
            raise ArchiveExtractionError(
                f"Archive contains more than {self._extractor.max_entries} report files",
                error_code=EnumErrorCode.ARCHIVE_TOO_LARGE,
                context=self._context,
            )

        parser = JUnitStreamParser(source_file=name)
        entry_bytes = 0
        try:
            while chunk := stream.read(self._extractor.chunk_size):
                entry_bytes += len(chunk)
                self._total_bytes += len(chunk)
                if self._total_bytes > self._extractor.max_total_bytes:
                    raise ArchiveExtractionError(
                        f"Archive exceeds {self._extractor.max_total_bytes} "
                        "decompressed bytes",
                        error_code=EnumErrorCode.ARCHIVE_TOO_LARGE,
                        context=self._context,
                    )
                if entry_bytes > self._extractor.max_entry_bytes:
                    raise _EntryTooLargeError
                parser.feed(chunk)
            suites = parser.close()
        except _EntryTooLargeError:
            self._skip_oversized(name)
            return
        except ReportParseError as e:
            logger.warning(
                "Skipping malformed report file",
                extra={
                    "source_file": name,
                    "error": e.message,
                    "correlation_id": _corr(self._context),
                },
            )
            self._warnings.append(e.message)
            return

        self._files_parsed += 1
        self._suites.extend(suites)

    def _skip_oversized(self, name: str) -> None:
        logger.warning(
            "Skipping oversized report file",
            extra={
                "source_file": name,
                "max_entry_bytes": self._extractor.max_entry_bytes,
                "correlation_id": _corr(self._context),
            },
        )
        self._warnings.append(
            f"{name}: exceeds {self._extractor.max_entry_bytes} bytes, skipped"
        )


def _corr(context: ModelInfraErrorContext) -> str | None:
    return str(context.correlation_id) if context.correlation_id else None


__all__: list[str] = ["ArchiveExtractor", "is_report_entry"]
