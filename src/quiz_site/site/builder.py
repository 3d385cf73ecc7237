"""Sequential batch driver for build, check and fix runs."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from quiz_site.core import iter_text_files, read_text_file, title_from_filename
from quiz_site.quiz import (
    Diagnostic,
    DiagnosticKind,
    IndexEntry,
    MalformedDocument,
    QuizDocument,
    format_document,
    normalize_document,
    parse_document,
    render_index,
    render_page,
)

from .config import SiteConfig

INDEX_FILENAME = "index.html"


class RunMode(Enum):
    BUILD = "build"
    CHECK = "check"
    FIX = "fix"


class DocumentStatus(Enum):
    """Outcome status for a single source document."""

    OK = "ok"
    MALFORMED = "malformed"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentResult:
    """Result of processing (or attempting to process) one source file."""

    source: Path
    status: DocumentStatus
    document: Optional[QuizDocument] = None
    output_path: Optional[Path] = None
    changed: bool = False
    reason: Optional[str] = None
    error: Optional[Exception] = field(default=None, compare=False)

    @property
    def diagnostics(self) -> Tuple[Tuple[int, Diagnostic], ...]:
        if self.document is None:
            return ()
        return tuple(self.document.iter_diagnostics())


@dataclass(frozen=True)
class BuildSummary:
    """Aggregated results folded from every per-document result."""

    mode: RunMode
    requested: Tuple[Path, ...]
    results: Tuple[DocumentResult, ...]
    index_path: Optional[Path] = None

    @property
    def ok_count(self) -> int:
        return self._count(DocumentStatus.OK)

    @property
    def malformed_count(self) -> int:
        return self._count(DocumentStatus.MALFORMED)

    @property
    def failure_count(self) -> int:
        return self._count(DocumentStatus.FAILED)

    @property
    def changed_count(self) -> int:
        return sum(1 for result in self.results if result.changed)

    @property
    def question_count(self) -> int:
        return sum(
            len(result.document.questions)
            for result in self.results
            if result.document is not None
        )

    @property
    def diagnostic_count(self) -> int:
        return sum(len(result.diagnostics) for result in self.results)

    def diagnostics_by_kind(self) -> Dict[DiagnosticKind, int]:
        counts: Counter[DiagnosticKind] = Counter(
            diagnostic.kind
            for result in self.results
            for _, diagnostic in result.diagnostics
        )
        return {kind: counts[kind] for kind in DiagnosticKind if counts[kind]}

    def exit_code(self, *, strict: bool = False) -> int:
        if self.failure_count or self.malformed_count:
            return 1
        if strict and self.diagnostic_count:
            return 1
        return 0

    def _count(self, status: DocumentStatus) -> int:
        return sum(1 for result in self.results if result.status is status)


def load_document(source: Path) -> QuizDocument:
    """Read, parse and normalize one quiz file."""
    text = read_text_file(source)
    document = parse_document(
        text, default_title=title_from_filename(source), source=source
    )
    return normalize_document(document)


def check_document(source: Path) -> DocumentResult:
    return _guarded(source, lambda: _checked(source))


def build_document(
    source: Path,
    *,
    config: SiteConfig,
    output_name: Optional[str] = None,
    write: bool = True,
) -> DocumentResult:
    """Render ``source`` to ``<output_dir>/<stem>.html``."""
    return _guarded(
        source,
        lambda: _built(
            source, config=config, output_name=output_name, write=write
        ),
    )


def fix_document(source: Path, *, write: bool = True) -> DocumentResult:
    """Rewrite ``source`` in canonical markdown when that changes it."""
    return _guarded(source, lambda: _fixed(source, write=write))


def run_check(
    inputs: Sequence[Path], *, config: SiteConfig, logger: logging.Logger
) -> BuildSummary:
    return _run(
        RunMode.CHECK,
        inputs,
        config=config,
        logger=logger,
        process=lambda source, _name: check_document(source),
    )


def run_build(
    inputs: Sequence[Path],
    *,
    config: SiteConfig,
    logger: logging.Logger,
    write: bool = True,
) -> BuildSummary:
    """Build one page per input plus, when configured, an index page."""
    summary = _run(
        RunMode.BUILD,
        inputs,
        config=config,
        logger=logger,
        process=lambda source, name: build_document(
            source, config=config, output_name=name, write=write
        ),
    )
    if not (write and config.write_index):
        return summary

    index_path = config.output_dir / INDEX_FILENAME
    entries = [
        IndexEntry(
            title=result.document.title,
            href=result.output_path.name,
            question_count=len(result.document.questions),
            diagnostic_count=len(result.diagnostics),
        )
        for result in summary.results
        if result.status is DocumentStatus.OK
        and result.document is not None
        and result.output_path is not None
    ]
    index_path.parent.mkdir(parents=True, exist_ok=True)
    index_path.write_text(render_index(entries), encoding="utf-8")
    logger.info(
        "Wrote quiz index",
        extra={"index_path": str(index_path), "entry_count": len(entries)},
    )
    return BuildSummary(
        mode=summary.mode,
        requested=summary.requested,
        results=summary.results,
        index_path=index_path,
    )


def run_fix(
    inputs: Sequence[Path],
    *,
    config: SiteConfig,
    logger: logging.Logger,
    write: bool = True,
) -> BuildSummary:
    return _run(
        RunMode.FIX,
        inputs,
        config=config,
        logger=logger,
        process=lambda source, _name: fix_document(source, write=write),
    )


def _run(
    mode: RunMode,
    inputs: Sequence[Path],
    *,
    config: SiteConfig,
    logger: logging.Logger,
    process: Callable[[Path, str], DocumentResult],
) -> BuildSummary:
    requested = tuple(Path(raw).expanduser() for raw in inputs)
    extensions = set(config.extensions)

    logger.info(
        f"Starting quiz-site {mode.value} run",
        extra={
            "input_count": len(requested),
            "extensions": sorted(extensions),
            "output_dir": str(config.output_dir),
        },
    )

    results: List[DocumentResult] = []
    used_names: set[str] = set()
    for source, missing in _expand_inputs(requested, extensions):
        if missing is not None:
            result = DocumentResult(
                source=source,
                status=DocumentStatus.FAILED,
                reason=str(missing),
                error=missing,
            )
        else:
            result = process(source, _output_name(source, used_names))
        results.append(result)
        _log_result(logger, mode, result)

    summary = BuildSummary(
        mode=mode, requested=requested, results=tuple(results)
    )
    logger.info(
        f"Completed quiz-site {mode.value} run",
        extra={
            "ok_count": summary.ok_count,
            "malformed_count": summary.malformed_count,
            "failure_count": summary.failure_count,
            "diagnostic_count": summary.diagnostic_count,
        },
    )
    return summary


def _expand_inputs(
    inputs: Sequence[Path], extensions: set[str]
) -> Iterable[Tuple[Path, Optional[FileNotFoundError]]]:
    seen: set[Path] = set()
    for path in inputs:
        try:
            candidates = list(iter_text_files([path], extensions))
        except FileNotFoundError as exc:
            yield path, exc
            continue
        if path.is_file() and not candidates:
            # Explicitly named files are processed whatever their extension.
            candidates = [path]
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            yield resolved, None


def _output_name(source: Path, used: set[str]) -> str:
    stem = source.stem
    name = f"{stem}.html"
    counter = 2
    while name.lower() in used or name.lower() == INDEX_FILENAME:
        name = f"{stem}-{counter}.html"
        counter += 1
    used.add(name.lower())
    return name


def _guarded(
    source: Path, action: Callable[[], DocumentResult]
) -> DocumentResult:
    try:
        return action()
    except MalformedDocument as exc:
        return DocumentResult(
            source=source,
            status=DocumentStatus.MALFORMED,
            reason=str(exc),
            error=exc,
        )
    except Exception as exc:
        return DocumentResult(
            source=source,
            status=DocumentStatus.FAILED,
            reason=str(exc),
            error=exc,
        )


def _checked(source: Path) -> DocumentResult:
    return DocumentResult(
        source=source,
        status=DocumentStatus.OK,
        document=load_document(source),
    )


def _built(
    source: Path,
    *,
    config: SiteConfig,
    output_name: Optional[str],
    write: bool,
) -> DocumentResult:
    document = load_document(source)
    html = render_page(
        document,
        template_path=config.template,
        highlight_style=config.highlight_style,
    )
    target = config.output_dir / (output_name or f"{source.stem}.html")
    if write:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(html, encoding="utf-8")
    return DocumentResult(
        source=source,
        status=DocumentStatus.OK,
        document=document,
        output_path=target,
        changed=write,
    )


def _fixed(source: Path, *, write: bool) -> DocumentResult:
    original = read_text_file(source)
    document = load_document(source)
    rewritten = format_document(document)
    changed = rewritten != original
    if changed and write:
        source.write_text(rewritten, encoding="utf-8")
    return DocumentResult(
        source=source,
        status=DocumentStatus.OK,
        document=document,
        output_path=source,
        changed=changed,
    )


def _log_result(
    logger: logging.Logger, mode: RunMode, result: DocumentResult
) -> None:
    if result.status is DocumentStatus.OK:
        logger.info(
            "Processed document",
            extra={
                "mode": mode.value,
                "source": str(result.source),
                "output_path": (
                    str(result.output_path) if result.output_path else None
                ),
                "changed": result.changed,
                "question_count": (
                    len(result.document.questions) if result.document else 0
                ),
            },
        )
        for number, diagnostic in result.diagnostics:
            logger.warning(
                "Question diagnostic",
                extra={
                    "source": str(result.source),
                    "question": number,
                    "kind": diagnostic.kind.value,
                    "detail": diagnostic.message,
                },
            )
    elif result.status is DocumentStatus.MALFORMED:
        logger.warning(
            "Skipped malformed document",
            extra={"source": str(result.source), "reason": result.reason},
        )
    else:
        logger.error(
            "Failed to process document",
            extra={"source": str(result.source), "reason": result.reason},
        )


__all__ = [
    "BuildSummary",
    "DocumentResult",
    "DocumentStatus",
    "RunMode",
    "build_document",
    "check_document",
    "fix_document",
    "load_document",
    "run_build",
    "run_check",
    "run_fix",
]
