"""Routing: compiled route templates in an ordered, per-method table.

Routes are registered during setup and frozen when the app freezes.
"""

from stowage.routing.pattern import CompiledPattern, PathParams, compile_pattern
from stowage.routing.route import Route, RouteMatch
from stowage.routing.router import Router

__all__ = [
    "CompiledPattern",
    "PathParams",
    "Route",
    "RouteMatch",
    "Router",
    "compile_pattern",
]
