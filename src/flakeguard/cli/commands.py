# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
FlakeGuard CLI Commands.

Provides policy validation, local report inspection and the job worker.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flakeguard.enums import EnumTestStatus
from flakeguard.errors import (
    ArchiveExtractionError,
    PolicyValidationError,
    ProtocolConfigurationError,
)
from flakeguard.ingestion import ArchiveExtractor
from flakeguard.policy import (
    default_policy_config,
    dump_policy_document,
    parse_policy_document,
)
from flakeguard.runtime import ModelRuntimeConfig, configure_logging, run_worker

console = Console()


@click.group()
def cli() -> None:
    """FlakeGuard flaky-test pipeline CLI."""


@cli.group()
def policy() -> None:
    """Repository policy document commands."""


@policy.command("validate")
@click.argument(
    "file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def policy_validate_cmd(file: Path) -> None:
    """Validate a .flakeguard.yml policy document."""
    console.print(f"[bold blue]Validating policy {file}...[/bold blue]")
    try:
        config = parse_policy_document(file.read_text(encoding="utf-8"))
    except PolicyValidationError as e:
        console.print(f"[bold red]Policy: FAIL[/bold red] {escape(e.message)}")
        for error in e.errors:
            console.print(f"  [red]{escape(error)}[/red]")
        raise SystemExit(1) from e
    except UnicodeDecodeError as e:
        console.print("[bold red]Policy: FAIL[/bold red] file is not UTF-8 text")
        raise SystemExit(1) from e

    console.print("[bold green]Policy: PASS[/bold green]")
    console.print(
        f"  warn={config.warn_threshold} quarantine={config.flaky_threshold} "
        f"min_occurrences={config.min_occurrences} "
        f"teams={len(config.team_overrides)}"
    )


@policy.command("defaults")
def policy_defaults_cmd() -> None:
    """Print the effective default policy as YAML."""
    console.print(dump_policy_document(default_policy_config()), markup=False)


@cli.group()
def report() -> None:
    """Local test report commands."""


@report.command("parse")
@click.argument(
    "archive", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def report_parse_cmd(archive: Path) -> None:
    """Stream a ZIP/TAR archive or XML report through the parser."""
    try:
        result = ArchiveExtractor().extract(archive)
    except ArchiveExtractionError as e:
        console.print(f"[bold red]Archive rejected:[/bold red] {escape(e.message)}")
        raise SystemExit(1) from e

    table = Table(title=f"Test Suites ({len(result.suites)})")
    table.add_column("Suite", style="cyan")
    table.add_column("Source", style="dim")
    table.add_column("Tests", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Time (s)", justify="right", style="dim")

    for suite in result.suites:
        table.add_row(
            suite.name or "-",
            suite.source_file,
            str(suite.total_count),
            str(suite.count(EnumTestStatus.PASSED)),
            str(suite.count(EnumTestStatus.FAILED)),
            str(suite.count(EnumTestStatus.ERROR)),
            str(suite.count(EnumTestStatus.SKIPPED)),
            f"{suite.time_seconds:.2f}",
        )

    console.print(table)
    for warning in result.warnings:
        console.print(f"  [yellow]warning:[/yellow] {escape(warning)}")
    console.print(
        f"[bold]{result.total_tests} tests[/bold] from {result.files_parsed} "
        f"report files ({result.files_skipped} skipped)"
    )


@cli.command("worker")
def worker_cmd() -> None:
    """Run the job worker until interrupted."""
    configure_logging()
    try:
        config = ModelRuntimeConfig.from_env()
    except ProtocolConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(e.message)}")
        raise SystemExit(1) from e
    raise SystemExit(asyncio.run(run_worker(config)))


if __name__ == "__main__":
    cli()
