"""``roost routes``: list compiled routes.

Resolves an import string to a roost App, compiles its route table and
prints METHOD, PATH, HANDLER and ACCESS for every route.
"""

import argparse
import sys

from roost.cli._resolve import resolve_app
from roost.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Print the route table of ``args.app``."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        routes = app.router.routes
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str, str]] = [
        (
            route.method,
            route.path,
            f"{route.handler}.{route.action}",
            "public" if route.is_public else "private",
        )
        for route in routes
    ]

    widths = [
        max(len("METHOD"), *(len(r[0]) for r in rows)),
        max(len("PATH"), *(len(r[1]) for r in rows)),
        max(len("HANDLER"), *(len(r[2]) for r in rows)),
    ]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER", "ACCESS"))
    print("-" * min(sum(widths) + 6 + len("private"), 80))
    for row in rows:
        print(fmt.format(*row))
