"""Process supervisor: forks, watches, restarts, and stops workers.

One supervisor per host. Each registered service runs in its own forked
child and is restarted as soon as it exits, whatever the exit code.

Usage::

    supervisor = Supervisor(context, ROUTES)
    supervisor.register_service(SocketService, "users")
    supervisor.register_service("myapp.services:BillingService", "billing")
    supervisor.run()  # returns after SIGTERM/SIGINT
"""

import importlib
import logging
import os
import signal
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NoReturn

from setproctitle import setproctitle

from roost._internal.signals import SignalQueue, reset_to_default
from roost.config import RuntimeConfig
from roost.context import ServiceContext
from roost.errors import ConfigurationError, ForkError, UnknownServiceError
from roost.routing.table import RouteDeclarations
from roost.server.worker import process_title

logger = logging.getLogger("roost.supervisor")


class ServiceStatus(StrEnum):
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    CRASHED = "crashed"
    STOPPED = "stopped"


@dataclass(slots=True)
class ServiceRecord:
    """Bookkeeping for one supervised service.

    ``crashed`` means the child has exited and been reaped but no
    replacement is running yet.
    """

    name: str
    service_class: type
    pid: int
    start_time: float = field(default_factory=time.time)
    status: ServiceStatus = ServiceStatus.STARTING
    restarts: int = 0
    exit_code: int | None = None

    @property
    def uptime(self) -> float:
        return time.time() - self.start_time

    @property
    def class_path(self) -> str:
        return f"{self.service_class.__module__}:{self.service_class.__qualname__}"


def resolve_service_class(ref: type | str) -> type:
    """Resolve a class or a ``"package.module:Class"`` string to a class.

    A dotted ``"package.module.Class"`` string is accepted too.
    """
    if isinstance(ref, type):
        return ref
    if not isinstance(ref, str) or not ref:
        msg = f"Service class must be a class or an import string, got {ref!r}"
        raise UnknownServiceError(msg)

    if ":" in ref:
        module_path, _, attr_path = ref.partition(":")
    else:
        module_path, _, attr_path = ref.rpartition(".")
    if not module_path or not attr_path:
        msg = f"Service class not found: {ref}"
        raise UnknownServiceError(msg)

    try:
        obj: Any = importlib.import_module(module_path)
        for attr in attr_path.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as exc:
        msg = f"Service class not found: {ref}"
        raise UnknownServiceError(msg) from exc

    if not isinstance(obj, type):
        msg = f"{ref!r} resolved to {type(obj).__name__}, not a class"
        raise UnknownServiceError(msg)
    return obj


class Supervisor:
    """Owns the worker processes for one host.

    Records are kept per service name. A restart replaces the record for
    that name, carrying the restart count forward.
    """

    def __init__(
        self,
        context: ServiceContext,
        routes: RouteDeclarations,
        *,
        config: RuntimeConfig | None = None,
    ) -> None:
        self.context = context
        self.routes = routes
        self.config = config or context.config
        self.running = False
        self._records: dict[str, ServiceRecord] = {}

        self._signals = SignalQueue()
        self._signals.on(signal.SIGTERM, self._on_stop_signal)
        self._signals.on(signal.SIGINT, self._on_stop_signal)
        self._signals.on(signal.SIGHUP, self._on_reload_signal)

    @property
    def services(self) -> dict[str, ServiceRecord]:
        return dict(self._records)

    # -- Registration / forking --

    def register_service(self, service_class: type | str, name: str) -> ServiceRecord:
        """Fork a child that runs ``service_class(name, context).listen(routes)``."""
        cls = resolve_service_class(service_class)
        existing = self._records.get(name)
        if existing is not None and existing.status != ServiceStatus.STOPPED:
            msg = f"Service {name!r} is already registered (PID {existing.pid})."
            raise ConfigurationError(msg)

        logger.info("Service registered: %s (%s)", name, cls.__qualname__)
        record = self._spawn(cls, name)
        self._log_status()
        return record

    def _spawn(self, cls: type, name: str, *, restarts: int = 0) -> ServiceRecord:
        try:
            pid = os.fork()
        except OSError as exc:
            msg = f"Fork unsuccessful for service {name!r}: {exc}"
            raise ForkError(msg) from exc

        if pid == 0:
            self._run_child(cls, name)

        record = ServiceRecord(
            name=name,
            service_class=cls,
            pid=pid,
            status=ServiceStatus.RUNNING if self.running else ServiceStatus.STARTING,
            restarts=restarts,
        )
        self._records[name] = record
        logger.info("Service started: %s (PID: %d)", name, pid)
        return record

    def _run_child(self, cls: type, name: str) -> NoReturn:
        exit_code = 0
        try:
            reset_to_default(signal.SIGTERM, signal.SIGINT, signal.SIGHUP)
            setproctitle(process_title(self.config.process_title, name, cls))
            service = cls(name, self.context)
            service.listen(self.routes)
        except SystemExit as exc:
            exit_code = exc.code if isinstance(exc.code, int) else 1
        except Exception:
            logger.exception("[%s] Service failed", name)
            exit_code = 1
        finally:
            logging.shutdown()
            os._exit(exit_code)

    def _log_status(self) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("==== Service status ====")
        logger.debug("Supervisor PID: %d", os.getpid())
        for name, info in self.get_status().items():
            logger.debug(" - %s (PID: %d, %s)", name, info["pid"], info["status"])

    # -- Monitor loop --

    def run(self) -> None:
        """Supervise until a stop signal arrives, then shut everything down."""
        self._signals.install()
        self.running = True
        for record in self._records.values():
            if record.status == ServiceStatus.STARTING:
                record.status = ServiceStatus.RUNNING
        logger.info("Supervisor running, managing %d service(s)", len(self._records))

        try:
            while self.running:
                self.dispatch_signals()
                if not self.running:
                    break
                self.tick()
                time.sleep(self.config.poll_interval)
        finally:
            if self.running:
                self.shutdown()
            self._signals.restore()

    def dispatch_signals(self) -> int:
        """Apply queued signals. Returns how many were handled."""
        return self._signals.dispatch()

    def tick(self) -> list[str]:
        """Reap exited children and restart them. Returns the restarted names."""
        restarted: list[str] = []
        for name, record in list(self._records.items()):
            if record.status == ServiceStatus.STOPPED:
                continue

            if record.status != ServiceStatus.CRASHED:
                exited, exit_code = self._reap(record.pid)
                if not exited:
                    continue
                record.exit_code = exit_code
                record.status = ServiceStatus.CRASHED
                logger.warning(
                    "Service exited: %s (PID: %d, exit code: %s)", name, record.pid, exit_code
                )

            record.status = ServiceStatus.RESTARTING
            logger.info("Service restarting: %s", name)
            try:
                new_record = self._spawn(record.service_class, name, restarts=record.restarts + 1)
            except ForkError:
                logger.exception("Restart failed for service %s", name)
                record.status = ServiceStatus.CRASHED
                continue
            new_record.status = ServiceStatus.RUNNING
            restarted.append(name)
        return restarted

    @staticmethod
    def _reap(pid: int) -> tuple[bool, int | None]:
        """Non-blocking wait. Returns (exited, exit_code)."""
        try:
            done, status = os.waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            # Already reaped elsewhere; the exit code is lost.
            return True, None
        if done == 0:
            return False, None
        return True, os.waitstatus_to_exitcode(status)

    # -- Signals --

    def _on_stop_signal(self, signum: int) -> None:
        logger.info("Shutdown signal %d received, stopping all services", signum)
        self.shutdown()

    def _on_reload_signal(self, signum: int) -> None:
        logger.info("Reload signal received")
        self.reload()

    def reload(self) -> None:
        """Forward SIGHUP to every live child."""
        logger.info("Reloading all services")
        for record in self._records.values():
            if record.status in (ServiceStatus.STOPPED, ServiceStatus.CRASHED):
                continue
            try:
                os.kill(record.pid, signal.SIGHUP)
            except ProcessLookupError:
                logger.warning("Service %s (PID: %d) is gone", record.name, record.pid)

    def shutdown(self) -> None:
        """Stop every child: SIGTERM, bounded wait, then SIGKILL."""
        logger.info("Services are shutting down...")
        self.running = False

        for record in self._records.values():
            if record.status == ServiceStatus.STOPPED:
                continue
            if record.status != ServiceStatus.CRASHED:
                self._terminate(record)
            record.status = ServiceStatus.STOPPED

        logger.info("All services closed")

    def _terminate(self, record: ServiceRecord) -> None:
        logger.info("Sending SIGTERM to service %s (PID: %d)", record.name, record.pid)
        try:
            os.kill(record.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass

        deadline = time.monotonic() + self.config.shutdown_timeout
        while time.monotonic() < deadline:
            exited, exit_code = self._reap(record.pid)
            if exited:
                record.exit_code = exit_code
                logger.info("Service %s terminated", record.name)
                return
            time.sleep(self.config.poll_interval)

        logger.warning("Service %s is not responding, sending SIGKILL", record.name)
        try:
            os.kill(record.pid, signal.SIGKILL)
            _, status = os.waitpid(record.pid, 0)
        except (ProcessLookupError, ChildProcessError):
            return
        record.exit_code = os.waitstatus_to_exitcode(status)

    # -- Introspection --

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Per-service pid, uptime, status, class, and restart count."""
        report: dict[str, dict[str, Any]] = {}
        for name, record in self._records.items():
            status = record.status
            if status != ServiceStatus.STOPPED and not _is_alive(record.pid):
                status = ServiceStatus.CRASHED
            report[name] = {
                "pid": record.pid,
                "uptime": record.uptime,
                "status": str(status),
                "class": record.class_path,
                "restarts": record.restarts,
            }
        return report


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True
