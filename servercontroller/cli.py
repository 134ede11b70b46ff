"""Command line entry point: start the server or manage migrations."""

import argparse
import sys
from typing import Optional, Sequence

from .infrastructure import load_config
from .migration import create_migration, open_migrator
from .server import serve


def _start(args: argparse.Namespace) -> None:
    try:
        config = load_config(".")
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"failed to load configuration: {exc}") from exc
    serve(config)


def _create(args: argparse.Namespace) -> None:
    create_migration(args.name)


def _up(args: argparse.Namespace) -> None:
    with open_migrator() as migrator:
        migrator.up()


def _down(args: argparse.Namespace) -> None:
    with open_migrator() as migrator:
        migrator.steps(-1)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="servercontroller", description="Server Controller")
    parser.set_defaults(handler=None, help_parser=parser)
    commands = parser.add_subparsers(title="commands")

    start = commands.add_parser("start", help="start the dashboard server")
    start.set_defaults(handler=_start)

    migrate = commands.add_parser("migrate", help="migrate the database schema")
    migrate.set_defaults(handler=None, help_parser=migrate)
    steps = migrate.add_subparsers(title="commands")

    create = steps.add_parser("create", help="create a new migration file pair")
    create.add_argument("--name", required=True, help="migration name")
    create.set_defaults(handler=_create)

    steps.add_parser("up", help="run the migration files").set_defaults(handler=_up)
    steps.add_parser("down", help="rollback the migration").set_defaults(handler=_down)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line and return the exit status."""
    args = _build_parser().parse_args(argv)
    if args.handler is None:
        args.help_parser.print_help()
        return 0
    try:
        args.handler(args)
    except KeyboardInterrupt:
        return 130
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())