"""Roost CLI: run a supervisor, inspect routes, call a worker.

Entry point registered as ``roost`` in ``pyproject.toml``::

    [project.scripts]
    roost = "roost.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``roost`` command."""
    parser = argparse.ArgumentParser(
        prog="roost",
        description="Roost: supervised JSON services over Unix domain sockets.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- roost run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the supervisor and its services")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--config", default=None, help="TOML config file")
    run_parser.add_argument("--socket-dir", default=None, help="Directory for service sockets")
    run_parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: from config)",
    )
    run_parser.add_argument(
        "--log-format",
        default=None,
        choices=["text", "json"],
        help="Log format (default: from config)",
    )

    # -- roost routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List compiled routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- roost call -------------------------------------------------------
    call_parser = subparsers.add_parser("call", help="Send one request to a running service")
    call_parser.add_argument("target", help="Socket path, or a service name")
    call_parser.add_argument("--method", default="GET", help="Request method (default: GET)")
    call_parser.add_argument("--path", default="/", help="Request path (default: /)")
    call_parser.add_argument("--data", default=None, help="JSON object sent as 'data'")
    call_parser.add_argument("--token-file", default=None, help="File holding the auth token")
    call_parser.add_argument(
        "--socket-dir",
        default=None,
        help="Directory used to resolve a service name (default: /tmp/service)",
    )
    call_parser.add_argument("--timeout", type=float, default=5.0, help="Seconds to wait")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from roost.cli._run import run_app

        run_app(args)
    elif args.command == "routes":
        from roost.cli._routes import run_routes

        run_routes(args)
    elif args.command == "call":
        from roost.cli._call import run_call

        run_call(args)
