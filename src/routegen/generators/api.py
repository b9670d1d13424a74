from __future__ import annotations

import json
from fnmatch import fnmatchcase
from typing import Any, Iterable, Mapping, Optional

from routegen.domain.models import ApiRoute, EventKind, RouteSnapshot, WatcherEvent
from routegen.generators.base import GeneratorConstructor
from routegen.generators.ordering import sort_by_specificity
from routegen.options import ResolvedOptions
from routegen.paths import API_DIR, API_LIB_DIR
from routegen.render.renderer import render_to_file
from routegen.render.templates import API_INDEX, API_ROUTE_LIB
from routegen.routes.tokens import crc32, parse_path_tokens, path_pattern

NAME = "API Generator"


def api_routes(entries: Iterable) -> list[ApiRoute]:
    return [e.route for e in entries if e.kind == "api"]


def affected_by(event: WatcherEvent, routes: Iterable[ApiRoute]) -> list[ApiRoute]:
    """Routes whose own file or one of whose dependencies is `event.file`."""
    return [
        r for r in routes if r.file_fullpath == event.file or event.file in r.referenced_files
    ]


def factory(options: ResolvedOptions, config: Mapping[str, Any]):
    paths = options.paths()
    source_folder = options.source_folder
    formatters = options.formatters

    # url -> route name
    aliases: dict[str, str] = dict(config.get("alias") or {})
    # route name glob -> meta object
    meta = list((config.get("meta") or {}).items())

    def resolve_meta(route: ApiRoute) -> Optional[str]:
        for pattern, value in meta:
            if fnmatchcase(route.name, pattern):
                return json.dumps(value) if isinstance(value, dict) else None
        return None

    def generate_lib_files(routes: Iterable[ApiRoute]) -> None:
        for route in routes:
            render_to_file(
                paths.resolve("api_lib", route.import_path, "index.ts"),
                API_ROUTE_LIB,
                {"route": route, "params_schema": [p.model_dump() for p in route.params.param_specs]},
                overwrite=True,
                formatters=formatters,
            )

    def index_item(route: ApiRoute, tokens, name: str, import_name: str) -> dict[str, Any]:
        return {
            "name": name,
            "tokens": tokens,
            "path": path_pattern(tokens),
            "import_name": import_name,
            "import_api": f"{source_folder}/{API_DIR}/{route.import_path}",
            "methods": list(route.methods),
            "numeric_params": list(route.numeric_params),
            "meta": resolve_meta(route),
        }

    def generate_index(routes: list[ApiRoute]) -> None:
        items = []
        for route in routes:
            items.append(index_item(route, route.path_tokens, route.name, route.import_name))
            for url, target in aliases.items():
                if target == route.name:
                    items.append(
                        index_item(
                            route,
                            tuple(parse_path_tokens(url.strip("/"))),
                            url,
                            f"{route.import_name}_{crc32(url)}",
                        )
                    )

        render_to_file(
            paths.resolve("lib", source_folder, f"{API_LIB_DIR}.ts"),
            API_INDEX,
            {"routes": sort_by_specificity(items, tokens=lambda i: i["tokens"], path=lambda i: i["path"])},
            overwrite=True,
            formatters=formatters,
        )

    def watch_handler(entries: RouteSnapshot, event: Optional[WatcherEvent] = None) -> None:
        routes = api_routes(entries)
        if event is None:
            generate_lib_files(routes)
        elif event.kind in (EventKind.CREATE, EventKind.UPDATE):
            generate_lib_files(affected_by(event, routes))
        generate_index(routes)

    return watch_handler


def generator(config: Optional[Mapping[str, Any]] = None) -> GeneratorConstructor:
    config = dict(config or {})
    return GeneratorConstructor(
        name=NAME,
        module_import=__name__,
        module_config=config,
        factory=lambda options: factory(options, config),
        kind="api",
    )
