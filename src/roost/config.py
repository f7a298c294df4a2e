"""Runtime configuration.

RuntimeConfig is a frozen dataclass: immutable after creation, passed
explicitly to the supervisor and every worker, no global singleton.
"""

import dataclasses
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from roost.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Runtime configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RuntimeConfig(socket_dir="/run/roost", require_auth=True)
    """

    # Sockets
    socket_dir: str | Path = "/tmp/service"
    socket_permissions: int = 0o770
    max_connections: int = 50  # listen() backlog
    socket_timeout: float = 5.0  # SO_RCVTIMEO / SO_SNDTIMEO on the listening socket

    # Messages
    chunk_size: int = 4096
    service_timeout: float = 30.0  # per-message receive budget (seconds)

    # Security
    token_path: str | Path = ".auth_token"
    require_auth: bool = False

    # Supervisor / accept loop
    poll_interval: float = 0.001
    shutdown_timeout: float = 5.0
    process_title: str = "roost"

    # Logging
    log_level: str = "info"
    log_format: str = "text"
    debug: bool = False

    def socket_path(self, service_name: str) -> Path:
        """Filesystem address of the socket for *service_name*."""
        return Path(self.socket_dir) / f"service_{service_name}.sock"


def load_config(path: str | Path | None = None, **overrides: Any) -> RuntimeConfig:
    """Build a RuntimeConfig from defaults, an optional TOML file, and overrides.

    The file may hold the keys at top level or under a ``[roost]`` table.
    Keyword overrides win over file values. ``None`` overrides are ignored
    so CLI flags that were not given fall through.

    Raises ``ConfigurationError`` for unknown keys or an unreadable file.
    """
    values: dict[str, Any] = {}

    if path is not None:
        try:
            with open(path, "rb") as fh:
                raw = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            msg = f"Cannot load config file {str(path)!r}: {exc}"
            raise ConfigurationError(msg) from exc
        values.update(raw.get("roost", raw))

    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in dataclasses.fields(RuntimeConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigurationError(msg)

    if isinstance(values.get("socket_permissions"), str):
        values["socket_permissions"] = int(values["socket_permissions"], 8)

    return RuntimeConfig(**values)
