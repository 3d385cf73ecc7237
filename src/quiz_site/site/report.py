"""Rich console report for build, check and fix runs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .builder import BuildSummary, DocumentStatus, RunMode

_STATUS_STYLES = {
    DocumentStatus.OK: "green",
    DocumentStatus.MALFORMED: "yellow",
    DocumentStatus.FAILED: "red",
}


def render_report(
    console: Console,
    summary: BuildSummary,
    *,
    show_diagnostics: bool = True,
    base_dir: Optional[Path] = None,
) -> None:
    """Print the run overview, per-document results and diagnostics."""
    console.print()
    console.rule(Text(f"quiz-site {summary.mode.value}", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Documents", str(len(summary.results)))
    overview.add_row("OK", str(summary.ok_count))
    overview.add_row("Malformed", str(summary.malformed_count))
    overview.add_row("Failed", str(summary.failure_count))
    overview.add_row("Questions", str(summary.question_count))
    overview.add_row("Diagnostics", str(summary.diagnostic_count))
    if summary.mode is RunMode.FIX:
        overview.add_row("Rewritten", str(summary.changed_count))
    console.print(overview)

    documents = Table(title="Documents", box=box.SIMPLE, expand=True)
    documents.add_column("Source", overflow="fold")
    documents.add_column("Status")
    documents.add_column("Questions", justify="right")
    documents.add_column("Detail", overflow="fold")
    for result in summary.results:
        if result.document is not None:
            count = str(len(result.document.questions))
        else:
            count = "-"
        detail = result.reason or ""
        if not detail and result.output_path is not None:
            if summary.mode is RunMode.FIX:
                detail = "rewritten" if result.changed else "unchanged"
            elif summary.mode is RunMode.BUILD:
                detail = _display(result.output_path, base_dir)
        documents.add_row(
            _display(result.source, base_dir),
            Text(result.status.value, style=_STATUS_STYLES[result.status]),
            count,
            detail,
        )
    console.print(documents)

    by_kind = summary.diagnostics_by_kind()
    if by_kind:
        totals = Table(title="Diagnostics by kind", box=box.SIMPLE)
        totals.add_column("Kind")
        totals.add_column("Count", justify="right")
        for kind, count in by_kind.items():
            totals.add_row(kind.value, str(count))
        console.print(totals)

    if show_diagnostics and summary.diagnostic_count:
        detail_table = Table(title="Diagnostics", box=box.SIMPLE, expand=True)
        detail_table.add_column("Source", overflow="fold")
        detail_table.add_column("Q", justify="right")
        detail_table.add_column("Kind")
        detail_table.add_column("Message", overflow="fold")
        for result in summary.results:
            for number, diagnostic in result.diagnostics:
                detail_table.add_row(
                    _display(result.source, base_dir),
                    str(number),
                    diagnostic.kind.value,
                    diagnostic.message,
                )
        console.print(detail_table)

    if summary.index_path is not None:
        console.print(f"Index written to {_display(summary.index_path, base_dir)}")


def _display(path: Path, base_dir: Optional[Path]) -> str:
    if base_dir is not None:
        try:
            return str(path.relative_to(base_dir))
        except ValueError:
            pass
    return str(path)


__all__ = ["render_report"]
