"""Unified ``quiz-site`` entry point.

Each command is handled by a function in :mod:`quiz_site.site.cli`; this module
only routes the first argument and turns argparse exits into return codes.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import metadata
from typing import Callable, Mapping, Optional, Sequence

from quiz_site.site import cli as site_cli

CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """A ``quiz-site`` subcommand and the function that runs it."""

    name: str
    summary: str
    handler: CommandHandler


COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="build",
        summary="Render quiz markdown into interactive HTML pages.",
        handler=lambda argv: site_cli.build_main(argv),
    ),
    CommandSpec(
        name="check",
        summary="Report answer and structure diagnostics without writing.",
        handler=lambda argv: site_cli.check_main(argv),
    ),
    CommandSpec(
        name="fix",
        summary="Rewrite quiz markdown in the canonical layout.",
        handler=lambda argv: site_cli.fix_main(argv),
    ),
    CommandSpec(
        name="config",
        summary="Scaffold the quiz_site.toml configuration file.",
        handler=lambda argv: site_cli.config_main(argv),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in COMMAND_SPECS
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    lines = ["Available commands:"]
    lines.extend(
        f"  {spec.name.ljust(width)}  {spec.summary}" for spec in COMMAND_SPECS
    )
    return "\n".join(lines)


def format_usage() -> str:
    return "\n".join(
        [
            "Usage: quiz-site <command> [args...]",
            "Run `quiz-site list` for commands or `quiz-site help <name>` "
            "for details.",
            "",
            format_command_table(),
        ]
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        print(format_usage())
        return 2

    head, *tail = args
    if head in ("-h", "--help"):
        print(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        print(_version())
        return 0
    if head == "list":
        print(format_command_table())
        return 0
    if head == "help":
        return _help(tail)

    spec = COMMANDS.get(head)
    if spec is None:
        _unknown_command(head)
        return 2
    return run_command(spec, tail)


def run_command(spec: CommandSpec, argv: Sequence[str]) -> int:
    """Run ``spec`` and report argparse exits as return codes."""
    try:
        result = spec.handler(list(argv))
    except SystemExit as exc:
        return _exit_code(exc)
    return result if isinstance(result, int) else 0


def _help(argv: Sequence[str]) -> int:
    if not argv:
        print(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if spec is None:
        _unknown_command(argv[0])
        return 2
    print(f"{spec.name}: {spec.summary}")
    print(f"Run `quiz-site {spec.name} --help` for CLI-specific options.")
    return 0


def _unknown_command(name: str) -> None:
    print(f"Unknown command '{name}'.", file=sys.stderr)
    print(format_command_table(), file=sys.stderr)


def _version() -> str:
    try:
        return metadata.version("quiz-site")
    except metadata.PackageNotFoundError:
        return "unknown"


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    # sys.exit("message") prints nothing when caught, so show it here.
    print(exc.code, file=sys.stderr)
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
