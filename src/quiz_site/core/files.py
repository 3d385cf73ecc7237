"""File discovery and reading helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Set

__all__ = [
    "parse_extensions",
    "iter_text_files",
    "read_text_file",
    "title_from_filename",
]


def parse_extensions(
    values: Optional[Sequence[str]],
    *,
    default: Optional[Iterable[str]] = None,
) -> Set[str]:
    """Normalize extension strings to a lowercase set without leading dots.

    Empty or missing ``values`` yield ``default`` (``{"md"}`` when unset).
    """
    fallback = set(default or {"md"})
    if not values:
        return fallback

    normalized: Set[str] = set()
    for item in values:
        candidate = str(item).strip().lower().lstrip(".")
        if candidate:
            normalized.add(candidate)
    return normalized or fallback


def iter_text_files(
    paths: Sequence[Path],
    extensions: Set[str],
) -> Iterator[Path]:
    """Yield matching files from ``paths``.

    Files are yielded as given; directories are walked recursively in name
    order. A missing input raises ``FileNotFoundError``.
    """
    seen: Set[Path] = set()
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Input not found: {path}")
        if path.is_dir():
            candidates: Iterable[Path] = _sorted_files(path)
        else:
            candidates = [path]
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved in seen or not _matches(candidate, extensions):
                continue
            seen.add(resolved)
            yield candidate


def _sorted_files(root: Path) -> List[Path]:
    return sorted(
        (child for child in root.rglob("*") if child.is_file()),
        key=lambda p: str(p.relative_to(root)).lower(),
    )


def _matches(path: Path, extensions: Set[str]) -> bool:
    return path.suffix.lower().lstrip(".") in extensions


def read_text_file(path: Path) -> str:
    """Read a text file as UTF-8 with replacement for decode errors."""
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


def title_from_filename(path: Path) -> str:
    """Derive a display title from a quiz file name.

    ``13.2Combined.md`` becomes ``13.2``; ``intro_to-gans.md`` becomes
    ``Intro To Gans``.
    """
    stem = Path(path).stem
    for suffix in ("Combined", "combined", "Questions", "questions"):
        if stem.endswith(suffix) and stem != suffix:
            stem = stem[: -len(suffix)]
            break
    words = stem.replace("_", " ").replace("-", " ").split()
    if not words:
        return "Quiz"
    return " ".join(w if not w.isalpha() else w.capitalize() for w in words)
