"""TOML helpers behind the quiz-site configuration loader."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML file cannot be read, parsed or merged."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Parse ``path`` as TOML, wrapping IO and syntax errors."""

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Invalid TOML in {path}: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    prefix: str = "",
) -> None:
    """Merge ``override`` into ``base`` in place.

    Only keys already present in ``base`` are accepted, so a typo in a user
    config fails loudly instead of being ignored.
    """

    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        current = base[key]
        if isinstance(current, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected a table for '{dotted}', "
                    f"found {type(value).__name__}."
                )
            merge_defaults(current, value, prefix=f"{dotted}.")
        else:
            base[key] = value


def write_toml_template(
    path: Path, *, template: str, overwrite: bool = False
) -> Path:
    """Write ``template`` to ``path`` unless it exists and ``overwrite`` is off."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    return path
