"""Socket worker: one named service listening on a Unix domain socket.

A worker owns exactly one listening socket and serves one connection
at a time: accept, read one message, dispatch, write one response,
close. A failure on one connection never stops the accept loop.

Usage (normally done by the supervisor in a forked child)::

    service = SocketService("users", context)
    service.listen(ROUTES)
"""

import contextlib
import logging
import os
import selectors
import signal
import socket
import struct
import time
from pathlib import Path
from typing import Any

from setproctitle import setproctitle

from roost._internal.signals import SignalQueue
from roost.context import ServiceContext
from roost.errors import AccessDenied, AuthenticationError, TransportError
from roost.routing.dispatcher import Dispatcher
from roost.routing.table import RouteDeclarations, compile_routes
from roost.server.framing import decode_message, receive_message, send_message
from roost.server.handler import error_response, handle_message
from roost.server.metrics import Metrics

logger = logging.getLogger("roost.server")


def process_title(prefix: str, name: str, service_class: type) -> str:
    """Title shown by ``ps`` for a worker process."""
    return f"{prefix}: {name} [{service_class.__name__}]"


class SocketService:
    """A request/response endpoint bound to ``<socket_dir>/service_<name>.sock``.

    The socket is created in the constructor so a bad path or a
    permissions problem fails before the accept loop starts.

    *manage_process* controls the process-wide side effects (signal
    handlers and the process title). The supervisor's forked child
    leaves it on; tests that run a worker in a thread turn it off.
    """

    def __init__(
        self,
        name: str,
        context: ServiceContext,
        *,
        manage_process: bool = True,
    ) -> None:
        self.name = name
        self.context = context
        self.config = context.config
        self.socket_path: Path = self.config.socket_path(name)
        self.metrics = Metrics()
        self.running = False

        self._signals = SignalQueue()
        self._signals.on(signal.SIGTERM, self._on_stop_signal)
        self._signals.on(signal.SIGINT, self._on_stop_signal)
        self._signals.on(signal.SIGHUP, self._on_reload_signal)
        if manage_process:
            self._signals.install()
            setproctitle(process_title(self.config.process_title, name, type(self)))

        self._sock = self._create_socket()

    # -- Socket lifecycle --

    def _create_socket(self) -> socket.socket:
        path = self.socket_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists() or path.is_symlink():
                logger.info("[%s] Removing stale socket file %s", self.name, path)
                path.unlink()
        except OSError as exc:
            msg = f"Cannot prepare socket path {str(path)!r}: {exc}"
            raise TransportError(msg) from exc

        logger.info("[%s] Creating socket %s", self.name, path)
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            msg = f"Socket could not be created: {exc}"
            raise TransportError(msg) from exc

        try:
            timeval = _timeval(self.config.socket_timeout)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, timeval)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDTIMEO, timeval)
            sock.bind(str(path))
            sock.listen(self.config.max_connections)
            os.chmod(path, self.config.socket_permissions)
            sock.setblocking(False)
        except OSError as exc:
            sock.close()
            msg = f"Socket {str(path)!r} could not be bound: {exc}"
            raise TransportError(msg) from exc

        logger.info("[%s] Socket ready", self.name)
        return sock

    def close(self) -> None:
        """Close the listening socket and remove its file."""
        self._sock.close()
        with contextlib.suppress(FileNotFoundError):
            self.socket_path.unlink()

    # -- Signals --

    def _on_stop_signal(self, signum: int) -> None:
        logger.info("[%s] Signal %d received, shutting down", self.name, signum)
        self.stop()

    def _on_reload_signal(self, signum: int) -> None:
        logger.info("[%s] Reload signal received", self.name)
        self.reload()

    def dispatch_signals(self) -> int:
        return self._signals.dispatch()

    def stop(self) -> None:
        """Ask the accept loop to exit after the current iteration."""
        self.running = False

    def reload(self) -> None:
        """Hook for SIGHUP. The base worker has nothing to reload."""

    # -- Serving --

    def build_dispatcher(self, routes: RouteDeclarations) -> Dispatcher:
        router = compile_routes(
            routes,
            self.context.handlers,
            self.context.rules,
            container=self.context.container,
        )
        return Dispatcher(router, self.context.handlers, container=self.context.container)

    def listen(self, routes: RouteDeclarations) -> None:
        """Serve connections until ``stop()`` is called or a stop signal arrives."""
        selector = selectors.DefaultSelector()
        try:
            dispatcher = self.build_dispatcher(routes)
            selector.register(self._sock, selectors.EVENT_READ)
            logger.info("[%s] Listening on %s", self.name, self.socket_path)
            self.running = True

            while self.running:
                self.dispatch_signals()
                if not self.running:
                    break
                if not selector.select(timeout=self.config.poll_interval):
                    continue
                try:
                    conn, _ = self._sock.accept()
                except BlockingIOError:
                    continue
                except OSError as exc:
                    logger.error("[%s] Error while accepting connection: %s", self.name, exc)
                    continue
                self.handle_connection(conn, dispatcher)
        finally:
            selector.close()
            self.close()
            logger.info("[%s] Service stopped listening", self.name)

    def handle_connection(self, conn: socket.socket, dispatcher: Dispatcher) -> Any:
        """Serve one request on *conn* and close it. Returns the response sent."""
        start = time.perf_counter()
        counted = False
        message: dict[str, Any] = {}
        response: Any = None

        with conn:
            try:
                conn.settimeout(self.config.socket_timeout)
                raw = receive_message(
                    conn,
                    chunk_size=self.config.chunk_size,
                    timeout=self.config.service_timeout,
                )
                message = decode_message(raw)
                self.metrics.record_request()
                counted = True

                response = handle_message(
                    message,
                    dispatcher,
                    self.context.guard,
                    require_auth=self.config.require_auth,
                    service=self.name,
                )
                send_message(conn, response)
            except Exception as exc:
                self.metrics.record_error()
                self._log_failure(exc, message)
                response = error_response(exc)
                try:
                    send_message(conn, response)
                except Exception as send_exc:
                    logger.warning(
                        "[%s] Could not send error response: %s", self.name, send_exc
                    )
            finally:
                if counted:
                    elapsed = time.perf_counter() - start
                    self.metrics.record_latency(elapsed)
                    logger.debug(
                        "[%s] Request processed path=%s method=%s time=%.2fms",
                        self.name,
                        message.get("path", "/"),
                        message.get("method", "GET"),
                        elapsed * 1000,
                    )
        return response

    def _log_failure(self, exc: Exception, message: dict[str, Any]) -> None:
        where = f"{message.get('method', 'GET')} {message.get('path', '/')}" if message else "-"
        if isinstance(exc, AuthenticationError):
            logger.warning("[%s] Unauthorized request (%s)", self.name, where)
        elif isinstance(exc, AccessDenied):
            logger.warning("[%s] Forbidden: %s", self.name, exc)
        elif isinstance(exc, TransportError):
            logger.error("[%s] Transport error: %s", self.name, exc)
        else:
            logger.exception("[%s] Error while processing request (%s)", self.name, where)

    def get_metrics(self) -> dict[str, Any]:
        return self.metrics.snapshot()


def _timeval(seconds: float) -> bytes:
    """Pack *seconds* as a ``struct timeval`` for SO_RCVTIMEO/SO_SNDTIMEO."""
    whole = int(seconds)
    micro = int(round((seconds - whole) * 1_000_000))
    return struct.pack("ll", whole, micro)
