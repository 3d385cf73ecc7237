"""Configuration loader for quiz-site builds."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence

from quiz_site.core import config as core_config
from quiz_site.core import workspace as workspace_mod

CONFIG_FILENAME = "quiz_site.toml"
CONFIG_ENV = "QUIZ_SITE_CONFIG"
ENV_PREFIX = "QUIZ_SITE_"
TEMPLATE_FILENAME = "template.toml"

_DEFAULT_EXTENSIONS: tuple[str, ...] = ("md", "markdown")
_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_HIGHLIGHT_STYLE = "default"


class SiteConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class SiteConfig:
    """Fully resolved configuration for a build."""

    extensions: tuple[str, ...]
    output_dir: Path
    template: Optional[Path]
    write_index: bool
    highlight_style: str
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    extensions: Optional[Sequence[str]] = None
    output_dir: Optional[Path] = None
    template: Optional[Path] = None
    write_index: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Resolved config plus the workspace and file it came from."""

    config: SiteConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise SiteConfigError(str(exc)) from exc
    default_path = layout.path_for("config") / CONFIG_FILENAME

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_path,
    )

    options = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(options, parsed)
        except core_config.TomlConfigError as exc:
            raise SiteConfigError(str(exc)) from exc
    elif config_path is not None or _has_env_config(env_map):
        raise SiteConfigError(f"Config file not found: {requested_path}")

    base_dir = (
        loaded_path.parent.resolve() if loaded_path is not None else layout.home
    )

    output_dir = _pick_first(
        overrides.output_dir,
        _parse_env_path(env_map, "OUTPUT_DIR"),
        _coerce_optional_path(options["paths"]["output_dir"], "output_dir"),
    )
    template = _pick_first(
        overrides.template,
        _parse_env_path(env_map, "TEMPLATE"),
        _coerce_optional_path(options["paths"]["template"], "template"),
    )

    config = SiteConfig(
        extensions=_normalize_extensions(
            _pick_first(
                overrides.extensions,
                _parse_env_extensions(env_map),
                options["build"]["extensions"],
            )
        ),
        output_dir=(
            _resolve_path(output_dir, base_dir)
            if output_dir is not None
            else layout.path_for("site")
        ),
        template=_resolve_template(template, base_dir),
        write_index=_resolve_bool(
            overrides.write_index,
            options["build"]["write_index"],
            "build.write_index",
        ),
        highlight_style=_resolve_string(
            options["build"]["highlight_style"], "build.highlight_style"
        ),
        log_level=_resolve_string(
            _pick_first(
                overrides.log_level,
                _parse_env_string(env_map, "LOG_LEVEL"),
                options["logging"]["level"],
            ),
            "logging.level",
        ).upper(),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def template_text() -> str:
    resource = resources.files(__package__).joinpath(TEMPLATE_FILENAME)
    return resource.read_text(encoding="utf-8")


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "paths": {"output_dir": None, "template": None},
        "build": {
            "extensions": list(_DEFAULT_EXTENSIONS),
            "write_index": True,
            "highlight_style": _DEFAULT_HIGHLIGHT_STYLE,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _coerce_optional_path(value: object, key: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise SiteConfigError(f"paths.{key} must be a string when provided.")


def _resolve_path(candidate: object, base_dir: Path) -> Path:
    path = Path(str(candidate)).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _resolve_template(candidate: object, base_dir: Path) -> Optional[Path]:
    if candidate is None:
        return None
    path = _resolve_path(candidate, base_dir)
    if not path.is_file():
        raise SiteConfigError(f"Page template not found: {path}")
    return path


def _normalize_extensions(value: object) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise SiteConfigError("build.extensions must be a list of strings.")
    seen: set[str] = set()
    result: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise SiteConfigError("Extensions must be non-empty strings.")
        normalized = item.strip().lower().lstrip(".")
        if normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    if not result:
        raise SiteConfigError("At least one extension must be configured.")
    return tuple(result)


def _resolve_bool(override: Optional[bool], file_value: object, key: str) -> bool:
    if override is not None:
        return override
    if not isinstance(file_value, bool):
        raise SiteConfigError(f"{key} must be true or false.")
    return file_value


def _resolve_string(value: object, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SiteConfigError(f"{key} must be a non-empty string.")
    return value.strip()


def _parse_env_extensions(
    env_map: Mapping[str, str],
) -> Optional[Sequence[str]]:
    raw = _parse_env_string(env_map, "EXTENSIONS")
    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    return parts or None


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    return Path(raw).expanduser()


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "ConfigOverrides",
    "LoadResult",
    "SiteConfig",
    "SiteConfigError",
    "load_config",
    "template_text",
]
