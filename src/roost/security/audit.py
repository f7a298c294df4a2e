"""Security audit events.

Every failed authentication and every denied private route produces a
``SecurityEvent``. Events are always logged on ``roost.security``;
an application can also register one sink to forward them elsewhere::

    set_security_event_sink(lambda event: shipper.send(event.as_dict()))

Events describe the request (service, path, method) and never carry
the auth token.
"""

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from time import time
from typing import Any, TypeAlias

_log = logging.getLogger("roost.security")

AUTH_FAILED = "auth.failed"
ACCESS_DENIED = "access.denied"


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    name: str
    service: str | None = None
    path: str | None = None
    method: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    pid: int = field(default_factory=os.getpid)
    timestamp: float = field(default_factory=time)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


SecurityEventSink: TypeAlias = Callable[[SecurityEvent], None]

_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Install the process-wide sink. ``None`` removes it."""
    global _sink
    with _sink_lock:
        _sink = sink


def emit_security_event(
    name: str,
    *,
    service: str | None = None,
    path: str | None = None,
    method: str | None = None,
    details: dict[str, Any] | None = None,
) -> SecurityEvent:
    """Log *name* and hand it to the sink, if any.

    A failing sink is logged and does not affect the request that
    triggered the event.
    """
    event = SecurityEvent(name, service, path, method, dict(details or {}))
    _log.warning(
        "Security event %s service=%s path=%s method=%s",
        name,
        service or "-",
        path or "-",
        method or "-",
    )

    with _sink_lock:
        sink = _sink
    if sink is not None:
        try:
            sink(event)
        except Exception:
            _log.exception("Security event sink failed for %s", name)
    return event
