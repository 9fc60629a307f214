"""``roost routes`` — list routes in the order they are tried."""

import argparse
import sys

from roost.cli._resolve import resolve_app
from roost.routing.route import RESERVED_KEYS


def format_routes(app_routes: list[tuple[str, str, str]]) -> list[str]:
    """Format ``(pattern, target, extra)`` rows as aligned table lines."""
    max_pattern = max([len(r[0]) for r in app_routes] + [len("PATTERN")])
    max_target = max([len(r[1]) for r in app_routes] + [len("TARGET")])
    fmt = f"{{:<{max_pattern}}}  {{:<{max_target}}}  {{}}"
    lines = [fmt.format("PATTERN", "TARGET", "PARAMS").rstrip()]
    lines.append("-" * min(max_pattern + max_target + 10, 80))
    lines.extend(fmt.format(*row).rstrip() for row in app_routes)
    return lines


def run_routes(args: argparse.Namespace) -> None:
    """Print the compiled route table of ``args.app``."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = app.router.routes
    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str]] = []
    for route in routes:
        extra = {k: v for k, v in route.target.items() if k not in RESERVED_KEYS}
        params = ", ".join([f":{name}" for name in route.param_names] + [f"{k}={v}" for k, v in extra.items()])
        rows.append((route.pattern, f"{route.controller}/{route.action}", params))

    for line in format_routes(rows):
        print(line)
