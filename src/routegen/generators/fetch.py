from __future__ import annotations

import posixpath
from typing import Any, Mapping, Optional

from routegen.domain.models import EventKind, RouteSnapshot, WatcherEvent
from routegen.generators.api import affected_by, api_routes
from routegen.generators.base import GeneratorConstructor
from routegen.options import ResolvedOptions
from routegen.paths import API_LIB_DIR, FETCH_LIB_DIR
from routegen.render.renderer import render_to_file
from routegen.render.templates import FETCH_INDEX, FETCH_ROUTE, FETCH_RUNTIME

NAME = "Fetch Generator"

RUNTIME_MODULE = "_runtime"


def segments_for(route) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for t in route.path_tokens:
        if t.param is not None:
            out.append({"param": t.param.name, "optional": t.param.is_optional, "rest": t.param.is_rest})
        elif t.path != "/":
            out.append({"static": t.path})
    return out


def _relative_import(target: str, from_dir: str) -> str:
    rel = posixpath.relpath(target, from_dir)
    return rel if rel.startswith(".") else f"./{rel}"


def factory(options: ResolvedOptions, config: Mapping[str, Any]):
    """Typed fetch clients, one module per API route, plus an index re-exporting them."""
    paths = options.paths()
    formatters = options.formatters
    api_url = config.get("api_url", options.config.api_url)

    def generate_runtime() -> None:
        render_to_file(
            paths.resolve("fetch_lib", f"{RUNTIME_MODULE}.ts"),
            FETCH_RUNTIME,
            {"api_url": api_url},
            overwrite=True,
            formatters=formatters,
        )

    def generate_route_files(routes) -> None:
        for route in routes:
            here = f"{FETCH_LIB_DIR}/{route.import_path}"
            render_to_file(
                paths.resolve("fetch_lib", route.import_path, "index.ts"),
                FETCH_ROUTE,
                {
                    "route": route,
                    "segments": segments_for(route),
                    "runtime_import": _relative_import(f"{FETCH_LIB_DIR}/{RUNTIME_MODULE}", here),
                    "types_import": _relative_import(f"{API_LIB_DIR}/{route.import_path}/types", here),
                },
                overwrite=True,
                formatters=formatters,
            )

    def generate_index(routes) -> None:
        render_to_file(
            paths.resolve("lib", options.source_folder, f"{FETCH_LIB_DIR}.ts"),
            FETCH_INDEX,
            {"routes": sorted(routes, key=lambda r: r.name)},
            overwrite=True,
            formatters=formatters,
        )

    def watch_handler(entries: RouteSnapshot, event: Optional[WatcherEvent] = None) -> None:
        routes = api_routes(entries)
        if event is None:
            generate_runtime()
            generate_route_files(routes)
        elif event.kind in (EventKind.CREATE, EventKind.UPDATE):
            generate_route_files(affected_by(event, routes))
        generate_index(routes)

    return watch_handler


def generator(config: Optional[Mapping[str, Any]] = None) -> GeneratorConstructor:
    config = dict(config or {})
    return GeneratorConstructor(
        name=NAME,
        module_import=__name__,
        module_config=config,
        factory=lambda options: factory(options, config),
        kind="fetch",
    )
