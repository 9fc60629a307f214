"""Declarative route compilation and first-match path resolution.

Route definitions are ``(pattern, target)`` pairs compiled once into an
ordered, immutable route table. Resolution scans the table in declaration
order; the first route whose matcher covers the whole path wins.
"""

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from roost.errors import ConfigurationError
from roost.routing.route import RESERVED_KEYS, CompiledRoute, PathSegment

# A capture consumes one or more characters of a single segment.
CAPTURE_PATTERN = r"[^/]+"

type RouteDefinitions = Iterable[tuple[str, Mapping[str, str]]] | Mapping[str, Mapping[str, str]]


def parse_pattern(pattern: str) -> list[PathSegment]:
    """Parse a route pattern string into segments.

    Examples::

        "/user"           -> [PathSegment("user")]
        "/user/:id"       -> [PathSegment("user"), PathSegment(":id", is_param=True, ...)]
        "/"               -> [PathSegment("")]

    Raises ``ConfigurationError`` for empty, invalid, or repeated capture names.
    """
    segments: list[PathSegment] = []
    seen: set[str] = set()
    for part in pattern.lstrip("/").split("/"):
        if not part.startswith(":"):
            segments.append(PathSegment(value=part))
            continue

        name = part[1:]
        if not name.isidentifier():
            msg = f"Invalid capture {part!r} in route {pattern!r}: use ':name' with a Python identifier."
            raise ConfigurationError(msg)
        if name in seen:
            msg = f"Capture {name!r} appears more than once in route {pattern!r}."
            raise ConfigurationError(msg)
        seen.add(name)
        segments.append(PathSegment(value=part, is_param=True, param_name=name))
    return segments


def compile_pattern(segments: Iterable[PathSegment]) -> re.Pattern[str]:
    """Build the matcher for a parsed pattern.

    Literal segments are escaped, so ``.`` or ``+`` in a pattern match
    themselves. The result is meant for ``fullmatch``.
    """
    parts = [
        f"(?P<{seg.param_name}>{CAPTURE_PATTERN})" if seg.is_param else re.escape(seg.value)
        for seg in segments
    ]
    return re.compile("/" + "/".join(parts))


def _check_target(pattern: str, target: Mapping[str, str]) -> None:
    for key in RESERVED_KEYS:
        value = target.get(key)
        if not isinstance(value, str) or not value:
            msg = f"Route {pattern!r} target needs a non-empty {key!r}, got {value!r}."
            raise ConfigurationError(msg)


def compile_routes(definitions: RouteDefinitions) -> tuple[CompiledRoute, ...]:
    """Compile route definitions into an ordered route table.

    Accepts an iterable of ``(pattern, target)`` pairs or a mapping of
    pattern to target. Declaration order is preserved.
    """
    items = definitions.items() if isinstance(definitions, Mapping) else definitions
    table: list[CompiledRoute] = []
    for pattern, target in items:
        _check_target(pattern, target)
        segments = parse_pattern(pattern)
        table.append(
            CompiledRoute(
                pattern=pattern,
                regex=compile_pattern(segments),
                target=MappingProxyType(dict(target)),
                segments=tuple(segments),
            )
        )
    return tuple(table)


class Router:
    """Ordered route table with first-match-wins resolution.

    Usage::

        router = Router([
            ("/", {"controller": "home", "action": "index"}),
            ("/user/:id", {"controller": "user", "action": "show"}),
        ])
        router.resolve("/user/42")
        # {"controller": "user", "action": "show", "id": "42"}

    The table is built in ``__init__`` and never modified, so one
    instance can be shared by every request.
    """

    __slots__ = ("_routes",)

    def __init__(self, definitions: RouteDefinitions = ()) -> None:
        self._routes = compile_routes(definitions)

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        """The compiled route table, in declaration order."""
        return self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def resolve(self, path: str) -> dict[str, str] | None:
        """Resolve *path* to its target parameters.

        Returns a fresh dict holding the winning route's target plus every
        captured segment (raw, undecoded). Captures named ``controller`` or
        ``action`` are dropped; the target's values always win for those
        keys. Returns ``None`` when no route matches.
        """
        if not path.startswith("/"):
            path = "/" + path

        for route in self._routes:
            match = route.regex.fullmatch(path)
            if match is None:
                continue
            params = dict(route.target)
            for name, value in match.groupdict().items():
                if name not in RESERVED_KEYS:
                    params[name] = value
            return params
        return None
