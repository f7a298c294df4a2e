"""``roost run``: start the supervisor for an app.

Resolves an import string to a roost App, applies the config file and
CLI overrides, configures logging, and blocks until SIGTERM/SIGINT.
"""

import argparse
import dataclasses
import logging
import sys

from roost._internal.logs import configure_logging
from roost.cli._resolve import resolve_app
from roost.config import load_config
from roost.errors import RoostError

logger = logging.getLogger("roost.supervisor")


def run_app(args: argparse.Namespace) -> None:
    """Start every service declared on ``args.app`` and supervise them."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    overrides = {
        "socket_dir": args.socket_dir,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    try:
        if args.config is not None:
            config = load_config(args.config, **overrides)
        else:
            config = dataclasses.replace(
                app.config, **{k: v for k, v in overrides.items() if v is not None}
            )
        app.config = config
        configure_logging(config.log_level, config.log_format)
        app.run()
    except RoostError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    raise SystemExit(0)
