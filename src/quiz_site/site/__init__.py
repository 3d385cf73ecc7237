"""Batch build, check and fix runs over quiz markdown files."""

from __future__ import annotations

from .builder import (
    BuildSummary,
    DocumentResult,
    DocumentStatus,
    RunMode,
    build_document,
    check_document,
    fix_document,
    load_document,
    run_build,
    run_check,
    run_fix,
)
from .config import (
    ConfigOverrides,
    LoadResult,
    SiteConfig,
    SiteConfigError,
    load_config,
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
    "ConfigOverrides",
    "LoadResult",
    "SiteConfig",
    "SiteConfigError",
    "load_config",
]
