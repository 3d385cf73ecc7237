"""CLI entry points for quiz-site build, check, fix and config commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console

from quiz_site.core import config as core_config
from quiz_site.core import workspace as workspace_mod
from quiz_site.core.logging import configure_logger
from quiz_site.core.workspace import WorkspaceError

from .builder import BuildSummary, RunMode, run_build, run_check, run_fix
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    SiteConfigError,
    load_config,
    template_text,
)
from .report import render_report

_DESCRIPTIONS = {
    RunMode.BUILD: (
        "Parse, normalize and render quiz markdown into interactive HTML "
        "pages plus an index."
    ),
    RunMode.CHECK: (
        "Parse and normalize quiz markdown and report diagnostics without "
        "writing anything."
    ),
    RunMode.FIX: (
        "Rewrite quiz markdown in the canonical layout with one resolved "
        "answer line per question."
    ),
}


def build_main(argv: Sequence[str] | None = None) -> int:
    return _run_command(RunMode.BUILD, argv)


def check_main(argv: Sequence[str] | None = None) -> int:
    return _run_command(RunMode.CHECK, argv)


def fix_main(argv: Sequence[str] | None = None) -> int:
    return _run_command(RunMode.FIX, argv)


def _build_parser(mode: RunMode) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=f"quiz-site {mode.value}",
        description=_DESCRIPTIONS[mode],
        epilog=(
            "Run `quiz-site config init` to scaffold the default "
            f"{CONFIG_FILENAME} template."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Quiz markdown files or directories to process.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config, logs and output.",
    )
    parser.add_argument(
        "--extensions",
        nargs="+",
        help="Extensions picked up inside directories (e.g. md markdown).",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Omit the per-question diagnostics table from the report.",
    )

    if mode is RunMode.BUILD:
        parser.add_argument(
            "--output-dir",
            type=Path,
            help="Directory for generated HTML pages.",
        )
        parser.add_argument(
            "--template",
            type=Path,
            help="Jinja2 page template replacing the packaged one.",
        )
        parser.add_argument(
            "--no-index",
            action="store_true",
            help="Do not write index.html.",
        )
    if mode in (RunMode.BUILD, RunMode.FIX):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Process everything but write no files.",
        )
    if mode is RunMode.CHECK:
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Exit non-zero when any diagnostic is reported.",
        )
    return parser


def _run_command(mode: RunMode, argv: Sequence[str] | None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parser = _build_parser(mode)
    args = parser.parse_args(args_list)

    overrides = ConfigOverrides(
        extensions=args.extensions,
        output_dir=_absolute(getattr(args, "output_dir", None)),
        template=_absolute(getattr(args, "template", None)),
        write_index=False if getattr(args, "no_index", False) else None,
        log_level=args.log_level,
    )

    try:
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except SiteConfigError as exc:
        parser.error(str(exc))

    logger, log_path = configure_logger(
        f"quiz_site.{mode.value}",
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=args.verbose,
    )
    logger.debug(f"quiz-site {mode.value} CLI invoked")

    write = not getattr(args, "dry_run", False)
    runners: dict[RunMode, Callable[[], BuildSummary]] = {
        RunMode.BUILD: lambda: run_build(
            args.paths, config=load_result.config, logger=logger, write=write
        ),
        RunMode.CHECK: lambda: run_check(
            args.paths, config=load_result.config, logger=logger
        ),
        RunMode.FIX: lambda: run_fix(
            args.paths, config=load_result.config, logger=logger, write=write
        ),
    }
    summary = runners[mode]()

    console = Console()
    render_report(
        console,
        summary,
        show_diagnostics=not args.quiet,
        base_dir=Path.cwd(),
    )
    _print_footer(summary, load_result, log_path, dry_run=not write)
    return summary.exit_code(strict=getattr(args, "strict", False))


def _print_footer(
    summary: BuildSummary,
    load_result: LoadResult,
    log_path: Path,
    *,
    dry_run: bool,
) -> None:
    lines = []
    if summary.mode is RunMode.BUILD:
        lines.append(f"  output dir: {load_result.config.output_dir}")
    if dry_run:
        lines.append("  dry run: no files were written")
    lines.append(f"  log file:   {log_path}")
    sys.stdout.write("\n".join(lines) + "\n")


def _absolute(path: Optional[Path]) -> Optional[Path]:
    if path is None:
        return None
    candidate = path.expanduser()
    if not candidate.is_absolute():
        candidate = (Path.cwd() / candidate).resolve()
    return candidate


def config_main(argv: Sequence[str] | None = None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parser = _build_config_parser()
    args = parser.parse_args(args_list)
    return _handle_config_init(args)


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-site config",
        description="Manage quiz-site configuration files.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help=f"Write the default {CONFIG_FILENAME} template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used when resolving the default config path.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    return parser


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    try:
        written = core_config.write_toml_template(
            target, template=template_text(), overwrite=args.force
        )
    except core_config.TomlConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote quiz-site config to {written}\n")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        return _absolute(args.path)

    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(build_main())
