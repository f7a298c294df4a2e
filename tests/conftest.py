"""Shared fixtures for roost tests.

Socket paths live under a short ``/tmp/roost-*`` directory because
``AF_UNIX`` addresses are limited to about 100 bytes and pytest's
``tmp_path`` can be longer than that.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from roost.config import RuntimeConfig
from roost.context import ServiceContext
from roost.handlers import Handler, HandlerRegistry, TemplateMixin
from roost.security.audit import set_security_event_sink
from roost.security.token import TokenGuard

TOKEN = "a" * 64


class HomeHandler(Handler):
    def index(self) -> dict:
        return {"message": "Hello World!"}

    def echo(self) -> dict:
        return {"data": self.data}


class UserHandler(TemplateMixin, Handler):
    def show(self, user_id: int) -> dict:
        return {"id": user_id, "type": type(user_id).__name__, "template": self.template}

    def create(self) -> dict:
        return {"created": self.data}

    def files(self, filepath: str) -> dict:
        return {"path": filepath}

    def boom(self) -> dict:
        msg = "handler exploded"
        raise RuntimeError(msg)


ROUTES = {
    "/": [
        {
            "controller": "home",
            "action": "index",
            "method": "GET",
            "uri": "/",
            "is_public": True,
            "title": "Home",
        },
        {"controller": "home", "action": "echo", "method": "post", "uri": "/echo", "is_public": True},
    ],
    "/user": [
        {
            "controller": "users",
            "action": "show",
            "method": "GET",
            "uri": "/{user_id:int}",
            "template": "user/show.html",
            "is_public": True,
        },
        {
            "controller": "users",
            "action": "create",
            "method": "POST",
            "uri": "",
            "accept": ["name", "email"],
            "validations": {
                "name": [
                    {"rule": "required", "message": "Name is required"},
                    {
                        "rule": "max_length",
                        "params": {"max": 10},
                        "message": "Name must be at most {{max}} characters",
                    },
                ],
                "email": [{"rule": "email", "message": "Email is invalid"}],
            },
            "is_public": True,
        },
        {"controller": "users", "action": "files", "method": "GET", "uri": "/files/{filepath:path}", "is_public": True},
        {"controller": "users", "action": "boom", "method": "GET", "uri": "/boom", "is_public": True},
    ],
    "/admin": [
        {"controller": "home", "action": "index", "method": "GET", "uri": "/stats"},
    ],
}


@pytest.fixture
def handlers() -> HandlerRegistry:
    return HandlerRegistry({"home": HomeHandler, "users": UserHandler})


@pytest.fixture
def routes() -> dict:
    return ROUTES


@pytest.fixture
def guard() -> TokenGuard:
    return TokenGuard(TOKEN)


@pytest.fixture
def socket_dir():
    path = Path(tempfile.mkdtemp(prefix="roost-", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config(socket_dir: Path) -> RuntimeConfig:
    return RuntimeConfig(
        socket_dir=socket_dir,
        service_timeout=2.0,
        socket_timeout=2.0,
        shutdown_timeout=2.0,
        poll_interval=0.001,
        token_path=socket_dir / ".auth_token",
    )


@pytest.fixture
def context(config: RuntimeConfig, guard: TokenGuard, handlers: HandlerRegistry) -> ServiceContext:
    return ServiceContext(config=config, guard=guard, handlers=handlers)


@pytest.fixture
def security_events():
    """Collect security events emitted during the test."""
    events = []
    set_security_event_sink(events.append)
    yield events
    set_security_event_sink(None)
