"""Socket transport: framing, message pipeline, and the worker loop."""

from roost.server.framing import decode_message, encode_message, receive_message, send_message
from roost.server.handler import error_response, handle_message
from roost.server.metrics import Metrics
from roost.server.worker import SocketService

__all__ = [
    "Metrics",
    "SocketService",
    "decode_message",
    "encode_message",
    "error_response",
    "handle_message",
    "receive_message",
    "send_message",
]
