from __future__ import annotations

import argparse
import logging
import os
from dataclasses import fields, is_dataclass
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich_argparse import RawTextRichHelpFormatter

from safe_java_runner import CompileRequest, Pipeline, RunnerPolicy, SecurityFilter, sweep
from safe_java_runner.server import create_app

_CONSOLE = Console(no_color=False)
DEFAULT_PORT = 3001


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m sjr")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def _to_jsonable(value: object) -> Any:
    """Convert CLI return values into printable payloads.

    Example:
        ```python
        payload = _to_jsonable(summary)
        ```
    """
    if not isinstance(value, type) and is_dataclass(value):
        return {field.name: getattr(value, field.name) for field in fields(value)}
    if hasattr(value, "__dict__"):
        return vars(value)
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for the safe-java-runner service and tools.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m sjr",
        description=(
            "safe-java-runner CLI\n"
            "Serve the compile API or push local files through the same pipeline.\n"
            "The denylist is a pre-filter only; run the service as an unprivileged user."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m sjr serve --port 3001\n"
            "  python -m sjr run Main.java\n"
            "  python -m sjr check snippet.txt\n"
            "  python -m sjr sweep --max-age-seconds 300\n\n"
            "Config Examples:\n"
            "  python -m sjr --policy-file /etc/sjr/policy.toml serve"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--policy-file",
        help=(
            "TOML policy file with limits, toolchain commands and denylist.\n"
            "Keys left out keep the bundled defaults."
        ),
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    serve_cmd = sub.add_parser(
        "serve",
        help="Run the HTTP compile API.",
        description=(
            "Serve POST /compile, GET /health and GET / with uvicorn.\n"
            "Starts the scratch reaper and removes the scratch directory on shutdown."
        ),
        epilog=(
            "Examples:\n"
            "  python -m sjr serve\n"
            "  python -m sjr serve --host 127.0.0.1 --port 8080 --log-level debug"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    serve_cmd.add_argument(
        "--host",
        default=os.environ.get("HOST", "0.0.0.0"),
        help="Bind address (default: $HOST or 0.0.0.0).",
    )
    serve_cmd.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", DEFAULT_PORT)),
        help=f"Bind port (default: $PORT or {DEFAULT_PORT}).",
    )
    serve_cmd.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level for the service and uvicorn (default: info).",
    )

    run_cmd = sub.add_parser(
        "run",
        help="Compile and run a local source file.",
        description=(
            "Push one file through validation, the denylist, compile and run.\n"
            "Bare statements are wrapped in a Main class like API submissions."
        ),
        epilog=(
            "Examples:\n"
            "  python -m sjr run Main.java\n"
            "  python -m sjr run snippet.txt --language java"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("source_file")
    run_cmd.add_argument(
        "--language",
        default=None,
        help="Declared language (accepted and ignored; code always runs as Java).",
    )

    check_cmd = sub.add_parser(
        "check",
        help="Scan a local source file with the denylist only.",
        description="Report whether a file would be rejected by the security filter.",
        formatter_class=_HELP_FORMATTER,
    )
    check_cmd.add_argument("source_file")

    sweep_cmd = sub.add_parser(
        "sweep",
        help="Delete stale scratch artifacts once.",
        description=(
            "Remove scratch entries older than the retention threshold.\n"
            "Safe while the service runs: in-flight requests are younger than the threshold."
        ),
        epilog=(
            "Example:\n"
            "  python -m sjr sweep --max-age-seconds 600"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    sweep_cmd.add_argument(
        "--max-age-seconds",
        type=int,
        default=None,
        help="Age threshold (default: policy retention_seconds; never below twice the compile + run timeouts).",
    )

    return parser


def load_policy(policy_file: str | None) -> RunnerPolicy:
    """Load the policy named on the command line, or the bundled defaults.

    Example:
        ```python
        policy = load_policy("/etc/sjr/policy.toml")
        ```
    """
    if policy_file is None:
        return RunnerPolicy()
    return RunnerPolicy.from_file(policy_file)


def configure_logging(level: str) -> None:
    """Route service logs through Rich.

    Example:
        ```python
        configure_logging("debug")
        ```
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_CONSOLE, rich_tracebacks=True)],
        force=True,
    )


def _print_response(source_file: str, response: Any) -> None:
    """Render a pipeline response as a panel.

    Example:
        ```python
        _print_response("Main.java", response)
        ```
    """
    style = "green" if response.success else "red"
    title = f"{source_file} ({response.execution_time_ms} ms)"
    _CONSOLE.print(Panel(response.output or "(no output)", title=title, border_style=style))


def _print_rules(security_filter: SecurityFilter) -> None:
    """Render the active denylist rule names in a table.

    Example:
        ```python
        _print_rules(SecurityFilter())
        ```
    """
    table = Table(title="Denylist Rules")
    table.add_column("#", style="cyan")
    table.add_column("Rule", style="magenta")
    for index, name in enumerate(security_filter.rule_names, start=1):
        table.add_row(str(index), name)
    _CONSOLE.print(table)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `sjr` CLI command handler.

    Example:
        ```python
        code = main(["check", "Main.java"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        policy = load_policy(args.policy_file)
    except ValueError as exc:
        _CONSOLE.print(Panel.fit(f"Invalid policy: {exc}", style="bold red"))
        return 2

    if args.command == "serve":
        configure_logging(args.log_level)
        uvicorn.run(create_app(policy), host=args.host, port=args.port, log_level=args.log_level)
        return 0
    if args.command == "run":
        source = Path(args.source_file).read_text(encoding="utf-8")
        response = Pipeline(policy).submit(
            CompileRequest(source_text=source, language=args.language)
        )
        _print_response(args.source_file, response)
        return 0 if response.success else 1
    if args.command == "check":
        source = Path(args.source_file).read_text(encoding="utf-8")
        security_filter = SecurityFilter(policy.blocked_patterns)
        verdict = security_filter.scan(source)
        if verdict.blocked:
            _CONSOLE.print(Panel.fit(f"Blocked: {verdict.reason}", style="bold red"))
            return 1
        _CONSOLE.print(Panel.fit(f"Clean: {args.source_file}", style="bold green"))
        _print_rules(security_filter)
        return 0
    if args.command == "sweep":
        max_age = args.max_age_seconds if args.max_age_seconds is not None else policy.retention_seconds
        if max_age < policy.min_retention_seconds:
            _CONSOLE.print(
                Panel.fit(
                    f"Invalid --max-age-seconds: {max_age}s would delete in-flight requests; "
                    f"use at least {policy.min_retention_seconds}s",
                    style="bold red",
                )
            )
            return 2
        summary = _to_jsonable(sweep(policy.scratch_dir, max_age_seconds=max_age))
        _CONSOLE.print(Panel.fit(Pretty(summary), title="Sweep Summary", border_style="green"))
        return 0

    parser.error("Unhandled command")
    return 2
