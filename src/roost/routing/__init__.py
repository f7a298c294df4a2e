"""Routing: compiled route table and dispatcher.

Route declarations are compiled once into a trie ``Router``; the
``Dispatcher`` matches each message against it and calls the handler.
"""

from roost.routing.dispatcher import Dispatcher
from roost.routing.route import RouteEntry, RouteMatch
from roost.routing.router import Router
from roost.routing.table import RouteDeclarations, compile_routes

__all__ = [
    "Dispatcher",
    "RouteDeclarations",
    "RouteEntry",
    "RouteMatch",
    "Router",
    "compile_routes",
]
