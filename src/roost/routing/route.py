"""Route definition and compiled route frozen dataclasses."""

import re
from collections.abc import Mapping
from dataclasses import dataclass

# Keys every route target must carry. Captures never override them.
RESERVED_KEYS: tuple[str, str] = ("controller", "action")


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal:  ``/user``  (is_param=False)
    Capture:  ``/:id``   (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


@dataclass(frozen=True, slots=True)
class CompiledRoute:
    """A route pattern compiled to an anchored matcher, plus its target.

    Created once by ``compile_routes()``; never mutated afterwards.
    """

    pattern: str
    regex: re.Pattern[str]
    target: Mapping[str, str]
    segments: tuple[PathSegment, ...] = ()

    @property
    def controller(self) -> str:
        return self.target["controller"]

    @property
    def action(self) -> str:
        return self.target["action"]

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.param_name for s in self.segments if s.param_name)
