"""Audit command for scoring a documentation site.

This module provides a CLI command that crawls a documentation site, scores
it for AI agent discoverability and prints a summary (or the full JSON
result). Options left unset fall back to ``DOCAUDIT_*`` environment variables
and then to the configuration defaults.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from docaudit.core.config import AuditConfig
from docaudit.core.logger import get_logger
from docaudit.core.models import AuditResult, Severity
from docaudit.core.url_validation import UnsafeUrlError
from docaudit.services.audit import AuditService

console = Console()

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MED: "yellow",
    Severity.LOW: "cyan",
    Severity.PASS: "green",
}


def _score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def _print_summary(result: AuditResult) -> None:
    style = _score_style(result.score)
    meta = result.meta
    summary = (
        f"Score: [{style}]{result.score}/100[/{style}]\n"
        f"Pages: {result.crawled_pages}\n"
        f"Chunks: {meta.chunk_count}\n"
        f"Errors: {meta.error_count}\n"
        f"Skipped: {meta.skipped_pages}\n"
        f"Duration: {meta.duration_ms}ms"
    )
    console.print(Panel(summary, title=f"Audit Summary: {result.root_url}"))

    if meta.js_rendered_warning:
        console.print(
            "[yellow]Warning: site appears to be rendered client-side with "
            "JavaScript[/yellow]"
        )

    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Score", justify="right")
    for category in result.categories:
        table.add_row(category.name, f"{category.score}/{category.max}")
    console.print(table)

    if result.top_findings:
        findings = Table(title="Top Findings")
        findings.add_column("Severity")
        findings.add_column("Finding")
        for finding in result.top_findings:
            color = SEVERITY_STYLES[finding.severity]
            findings.add_row(
                f"[{color}]{finding.severity.value}[/{color}]", finding.message
            )
        console.print(findings)


def audit_command(
    url: str = typer.Argument(..., help="Root URL of the documentation site"),
    max_pages: int | None = typer.Option(
        None, "--max-pages", help="Maximum number of pages to crawl"
    ),
    max_depth: int | None = typer.Option(
        None, "--max-depth", help="Maximum link depth from the root"
    ),
    concurrency: int | None = typer.Option(
        None, "--concurrency", help="Maximum simultaneous page fetches"
    ),
    timeout_ms: int | None = typer.Option(
        None, "--timeout-ms", help="Per-request timeout in milliseconds"
    ),
    user_agent: str | None = typer.Option(
        None, "--user-agent", help="User-Agent header for every request"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON result"),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Write the JSON result to a file"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
) -> None:
    """Audit a documentation site for AI agent discoverability.

    Args:
        url: Root URL of the documentation site.
        max_pages: Page budget override.
        max_depth: Crawl depth override.
        concurrency: Concurrency override.
        timeout_ms: Timeout override in milliseconds.
        user_agent: User-Agent override.
        as_json: Print the JSON result instead of the summary.
        output: Optional output file for the JSON result.
        log_level: Console log level override.
    """
    overrides = {
        "max_pages": max_pages,
        "max_depth": max_depth,
        "concurrency": concurrency,
        "timeout_ms": timeout_ms,
        "user_agent": user_agent,
        "log_level": log_level,
    }
    try:
        config = AuditConfig(
            url=url, **{key: value for key, value in overrides.items() if value is not None}
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    get_logger("docaudit", log_level=config.log_level)

    try:
        result = asyncio.run(AuditService().run_audit(config))
    except UnsafeUrlError as exc:
        console.print(f"[red]Audit could not start: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    payload = json.dumps(result.to_dict(), indent=2)

    if as_json:
        typer.echo(payload)
    else:
        _print_summary(result)

    if output is not None:
        output.write_text(payload + "\n")
        console.print(f"Wrote JSON to {output}")
