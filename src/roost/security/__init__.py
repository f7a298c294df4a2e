"""Security utilities: shared token guard and audit events.

Token guard::

    from roost.security import TokenGuard

    guard = TokenGuard.load("/etc/roost/.auth_token")
    guard.authenticate_message({"auth_token": "..."})

Audit events::

    from roost.security import set_security_event_sink

    set_security_event_sink(lambda event: shipper.send(event.as_dict()))
"""

from roost.security.audit import (
    ACCESS_DENIED,
    AUTH_FAILED,
    SecurityEvent,
    emit_security_event,
    set_security_event_sink,
)
from roost.security.token import TokenGuard, generate_token

__all__ = [
    "ACCESS_DENIED",
    "AUTH_FAILED",
    "SecurityEvent",
    "TokenGuard",
    "emit_security_event",
    "generate_token",
    "set_security_event_sink",
]
