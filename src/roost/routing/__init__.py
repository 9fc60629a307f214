"""Routing — ordered route table with first-match resolution.

Routes are declared as ``(pattern, target)`` pairs and compiled into an
immutable table when the app freezes.
"""

from roost.routing.route import CompiledRoute, PathSegment
from roost.routing.router import Router, compile_routes, parse_pattern

__all__ = ["CompiledRoute", "PathSegment", "Router", "compile_routes", "parse_pattern"]
