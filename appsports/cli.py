"""
apps-ports command line
Find, inspect and stop the applications holding network ports.
"""
import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from appsports import __version__
from appsports.core.active_response import TerminationOrchestrator
from appsports.core.config import Config
from appsports.core.schemas import PortRecord, TerminationOutcome, TerminationState
from appsports.modules.port_resolver import PortResolver
from appsports.utils.logger import Logger

AFFIRMATIVE = ("y", "yes")
SUCCESS_STATES = (
    TerminationState.SUCCEEDED,
    TerminationState.CONTAINER_STOPPED,
    TerminationState.CONTAINER_REMOVED,
)

# Prompts go to stderr so --json output stays parseable
prompt_console = Console(stderr=True)


def ask(prompt: str) -> bool:
    """Read a y/N answer from stdin; anything but y/yes (or EOF) is a no."""
    try:
        answer = prompt_console.input(prompt, markup=False)
    except EOFError:
        return False
    return answer.strip().lower() in AFFIRMATIVE


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port '{value}'")
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port {port} is outside 1-65535")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apps-ports",
        description="Find and stop applications using specific ports",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-p", "--port", type=port_number, metavar="PORT", help="Specific port to check")
    mode.add_argument("-l", "--list", action="store_true", help="List all processes using ports")
    mode.add_argument("-k", "--kill", type=port_number, metavar="PORT",
                      help="Kill process using the specified port")
    parser.add_argument("--kill-docker-container", action="store_true",
                        help="When used with -k, also stop the Docker container behind a docker-proxy owner")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file (default: config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution steps to stderr")
    parser.add_argument("--version", action="version", version=f"apps-ports {__version__}")
    return parser


def render_records(console: Console, records: List[PortRecord]) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    for column in ("port", "pid", "process_name", "command", "docker_id", "docker_image", "access"):
        table.add_column(column, overflow="fold")

    for r in records:
        table.add_row(
            str(r.port),
            "-" if r.pid is None else str(r.pid),
            r.process_name,
            r.command,
            r.container.id[:12] if r.container else "",
            r.container.image if r.container else "",
            r.access_level.value,
        )
    console.print(table)


def render_outcomes(console: Console, outcomes: List[TerminationOutcome]) -> None:
    for outcome in outcomes:
        style = "green" if outcome.state in SUCCESS_STATES else None
        if not outcome.ok:
            style = "red"
        console.print(outcome.message, style=style, markup=False, highlight=False)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.kill_docker_container and args.kill is None:
        build_parser().error("--kill-docker-container requires -k/--kill")

    config = Config(args.config)
    logger = Logger()
    logger.configure("DEBUG" if args.verbose else config.log_level, config.log_file)

    console = Console()
    resolver = PortResolver(config)

    if args.kill is not None:
        records = resolver.find_by_port(args.kill)
        if not records:
            if args.json:
                print(json.dumps([]))
            else:
                console.print(f"No process found using port {args.kill}")
            return 0
        if not args.json:
            console.print(f"Found process(es) using port {args.kill}:")
            render_records(console, records)

        orchestrator = TerminationOrchestrator(confirm=ask, config=config, resolver=resolver)
        outcomes = orchestrator.terminate_all(records, args.kill_docker_container)
        if args.json:
            print(json.dumps([o.model_dump(mode="json") for o in outcomes], indent=2))
        else:
            render_outcomes(console, outcomes)
        return 0 if all(o.ok for o in outcomes) else 1

    if args.port is not None:
        records = resolver.find_by_port(args.port)
        if not records and not args.json:
            console.print(f"No process found using port {args.port}")
            return 0
    else:
        records = resolver.list_all()
        if not records and not args.json:
            console.print("No processes found using ports.")
            return 0

    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
    else:
        render_records(console, records)
    return 0


if __name__ == "__main__":
    sys.exit(main())
