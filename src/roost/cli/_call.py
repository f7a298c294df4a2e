"""``roost call``: send one request to a running service and print the reply."""

import argparse
import json
import sys
from pathlib import Path

from roost.client import ServiceClient
from roost.config import RuntimeConfig
from roost.errors import TransportError


def resolve_target(target: str, socket_dir: str | None = None) -> Path:
    """A path to a socket file, or a bare service name under *socket_dir*."""
    if "/" in target or target.endswith(".sock"):
        return Path(target)
    config = RuntimeConfig() if socket_dir is None else RuntimeConfig(socket_dir=socket_dir)
    return config.socket_path(target)


def run_call(args: argparse.Namespace) -> None:
    data = None
    if args.data is not None:
        try:
            data = json.loads(args.data)
        except json.JSONDecodeError as exc:
            print(f"Error: --data is not valid JSON: {exc}", file=sys.stderr)
            raise SystemExit(2) from exc
        if not isinstance(data, dict):
            print("Error: --data must be a JSON object", file=sys.stderr)
            raise SystemExit(2)

    token = None
    if args.token_file is not None:
        try:
            token = Path(args.token_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            print(f"Error: cannot read token file: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc

    client = ServiceClient(
        resolve_target(args.target, args.socket_dir),
        token=token,
        timeout=args.timeout,
    )
    try:
        response = client.request(args.method, args.path, data)
    except TransportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(json.dumps(response, indent=2, ensure_ascii=False))
