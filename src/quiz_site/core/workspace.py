"""Workspace layout used for configs, logs and default site output."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

WORKSPACE_ENV = "QUIZ_SITE_HOME"
DEFAULT_WORKSPACE = Path.home() / ".quiz-site-data"

_SUBDIRS = {
    "config": "config",
    "logs": "logs",
    "site": "site",
}


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace root and its named subdirectories."""

    home: Path
    directories: Mapping[str, Path]

    def path_for(self, key: str) -> Path:
        try:
            return self.directories[key]
        except KeyError as exc:
            raise KeyError(f"Unknown workspace directory '{key}'.") from exc


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Return the workspace layout, creating directories when ``create``.

    Without an explicit ``path`` or ``QUIZ_SITE_HOME`` the home directory
    default is tried first and a temp directory is used when it is not
    writable.
    """

    env_map = os.environ if env is None else env
    base, explicit = _resolve_base(env_map, path)

    candidates = [base]
    if create and not explicit:
        candidates.append(Path(tempfile.gettempdir()) / "quiz-site-data")

    error: Exception | None = None
    for candidate in candidates:
        try:
            return _layout(candidate, create=create)
        except PermissionError as exc:
            error = exc
    raise WorkspaceError(f"Unable to prepare workspace at {base}") from error


def _resolve_base(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    if override is not None:
        return override.expanduser().resolve(), True
    custom = (env.get(WORKSPACE_ENV) or "").strip()
    if custom:
        return Path(custom).expanduser().resolve(), True
    return DEFAULT_WORKSPACE, False


def _layout(base: Path, *, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {base}"
        )
    directories = {key: base / name for key, name in _SUBDIRS.items()}
    if create:
        for directory in (base, *directories.values()):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except FileExistsError as exc:
                raise WorkspaceError(
                    f"Expected a directory but found a file: {directory}"
                ) from exc
    return WorkspaceLayout(
        home=base, directories=MappingProxyType(directories)
    )
