"""Roost: supervised JSON services over Unix domain sockets.

One supervisor process forks a worker per named service. Each worker
listens on ``<socket_dir>/service_<name>.sock``, reads one JSON
message per connection, routes it by method and path, and writes the
handler's return value back.

Basic usage::

    from roost import App, Handler

    app = App()

    @app.handler("home")
    class HomeHandler(Handler):
        def index(self) -> dict:
            return {"message": "Hello World!"}

    app.routes("/", [
        {"controller": "home", "action": "index", "method": "GET",
         "uri": "/", "is_public": True},
    ])
    app.service("home")

    if __name__ == "__main__":
        app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "AccessDenied",
    "App",
    "AuthenticationError",
    "ConfigurationError",
    "Dispatcher",
    "Handler",
    "HandlerRegistry",
    "MethodNotAllowed",
    "NotFound",
    "RoostError",
    "RuntimeConfig",
    "ServiceClient",
    "ServiceContext",
    "SocketService",
    "Supervisor",
    "TemplateMixin",
    "TokenGuard",
    "TransportError",
    "ValidationError",
    "compile_routes",
    "load_config",
    "send_request",
]

# Public name -> defining module. Resolved on first attribute access.
_LAZY_IMPORTS: dict[str, str] = {
    "AccessDenied": "roost.errors",
    "App": "roost.app",
    "AuthenticationError": "roost.errors",
    "ConfigurationError": "roost.errors",
    "Dispatcher": "roost.routing.dispatcher",
    "Handler": "roost.handlers",
    "HandlerRegistry": "roost.handlers",
    "MethodNotAllowed": "roost.errors",
    "NotFound": "roost.errors",
    "RoostError": "roost.errors",
    "RuntimeConfig": "roost.config",
    "ServiceClient": "roost.client",
    "ServiceContext": "roost.context",
    "SocketService": "roost.server.worker",
    "Supervisor": "roost.supervisor",
    "TemplateMixin": "roost.handlers",
    "TokenGuard": "roost.security.token",
    "TransportError": "roost.errors",
    "ValidationError": "roost.errors",
    "compile_routes": "roost.routing.table",
    "load_config": "roost.config",
    "send_request": "roost.client",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import roost`` fast while providing a clean top-level API.
    """
    module_path = _LAZY_IMPORTS.get(name)
    if module_path is None:
        msg = f"module 'roost' has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_path), name)
