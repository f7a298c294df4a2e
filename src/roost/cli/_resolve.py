"""``module:attribute`` lookup for the ``run`` and ``routes`` commands."""

import importlib

from roost.app import App


def resolve_app(import_string: str) -> App:
    """Import ``"package.module:attr"`` and return the roost App it names.

    ``attr`` defaults to ``app``. A non-App callable is treated as an
    app factory and called with no arguments.

    ``ModuleNotFoundError`` and ``AttributeError`` propagate from the
    import; anything that does not end up as an App is a ``TypeError``.
    """
    module_name, _, attr = import_string.partition(":")
    target = getattr(importlib.import_module(module_name), attr or "app")

    if not isinstance(target, App) and callable(target):
        try:
            target = target()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(target, App):
        return target
    msg = f"{import_string!r} resolved to {type(target).__name__}, not a roost.App instance"
    raise TypeError(msg)
