"""Shared bearer token guard.

One secret per installation, persisted to an owner-only file. The
supervisor and each worker load it independently; it never changes for
the lifetime of a process.
"""

from __future__ import annotations

import hmac
import logging
import os
import secrets
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from roost.errors import ConfigurationError

_log = logging.getLogger("roost.security")

TOKEN_BYTES = 32


def generate_token() -> str:
    """Return a fresh random token (hex, 64 characters)."""
    return secrets.token_hex(TOKEN_BYTES)


class TokenGuard:
    """Holds the shared token and authenticates inbound messages.

    Usage::

        guard = TokenGuard.load(config.token_path)
        if not guard.authenticate_message(message):
            ...

    The token is never logged and never shows up in ``repr()``.
    """

    __slots__ = ("_path", "_token")

    def __init__(self, token: str, path: Path | None = None) -> None:
        if not token:
            msg = "Auth token must be a non-empty string."
            raise ConfigurationError(msg)
        self._token = token
        self._path = path

    @classmethod
    def load(cls, path: str | Path) -> TokenGuard:
        """Read the token at *path*, creating it (mode 0600) if absent."""
        token_path = Path(path)
        try:
            fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            token = token_path.read_text(encoding="utf-8").strip()
            if not token:
                msg = f"Auth token file {str(token_path)!r} is empty."
                raise ConfigurationError(msg) from None
            return cls(token, token_path)

        token = generate_token()
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(token)
        os.chmod(token_path, 0o600)
        _log.info("Created auth token file %s", token_path)
        return cls(token, token_path)

    @property
    def token(self) -> str:
        return self._token

    @property
    def path(self) -> Path | None:
        return self._path

    def validate_token(self, candidate: Any) -> bool:
        """Constant-time comparison against the shared token."""
        if not isinstance(candidate, str) or not candidate:
            return False
        return hmac.compare_digest(self._token.encode("utf-8"), candidate.encode("utf-8"))

    def authenticate_message(self, message: Mapping[str, Any]) -> bool:
        """True when *message* carries a valid ``auth_token``."""
        return self.validate_token(message.get("auth_token"))

    def __repr__(self) -> str:
        return f"TokenGuard(path={str(self._path)!r}, token=<redacted>)"
