from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from routegen.domain.models import (
    ApiEntry,
    ApiParams,
    ApiRoute,
    PageEntry,
    PageParams,
    PageRoute,
    RouteEntry,
    RouteResolver,
)
from routegen.extractors.base import SignatureExtractor
from routegen.paths import API_DIR, PAGES_DIR
from routegen.render.renderer import render, render_to_file, write_file
from routegen.render.templates import RESOLVED_TYPES_FILE, TYPES_FILE
from routegen.repo.scanner import scan_route_files
from routegen.routes import identity
from routegen.routes.tokens import crc32
from routegen.store.cache import RouteCache

if TYPE_CHECKING:
    from routegen.options import ResolvedOptions

log = logging.getLogger(__name__)

TYPES_FILE_NAME = "types.ts"

# file_fullpath -> resolver
Resolvers = dict[str, RouteResolver]


@dataclass(frozen=True)
class RoutesFactory:
    resolvers: Resolvers
    resolvers_factory: Callable[[Iterable[str]], Resolvers]
    resolve_route_file: Callable[[str], Optional[tuple[str, str]]]


def params_id(name: str) -> str:
    return f"ParamsT{crc32(name)}"


def routes_factory(options: "ResolvedOptions", extractor: Optional[SignatureExtractor] = None) -> RoutesFactory:
    """
    Discover every route file under the source folder and build one lazy
    resolver per file. Nothing is extracted until a handler is called.
    """
    extractor = extractor or options.extractor
    app_root = options.app_root
    source_folder = options.source_folder
    page_extensions = options.page_extensions

    def resolve_route_file(file: str) -> Optional[tuple[str, str]]:
        return identity.resolve_route_file(file, app_root, source_folder, page_extensions)

    def resolvers_factory(route_files: Iterable[str]) -> Resolvers:
        resolvers: Resolvers = {}
        for f in route_files:
            resolved = resolve_route_file(f)
            if resolved is None:
                continue
            folder, file = resolved
            entry = identity.build_route_entry(folder, file, app_root, source_folder)
            if folder == API_DIR:
                handler = _api_handler(entry, options, extractor)
            elif folder == PAGES_DIR:
                handler = _page_handler(entry)
            else:
                continue
            resolvers[entry.file_fullpath] = RouteResolver(name=entry.name, handler=handler)
        return resolvers

    route_files = scan_route_files(
        options.config.source_root,
        page_extensions,
        is_route=lambda f: resolve_route_file(f) is not None,
    )
    log.debug("discovered %d route files under %s", len(route_files), options.config.source_root)

    return RoutesFactory(
        resolvers=resolvers_factory(route_files),
        resolvers_factory=resolvers_factory,
        resolve_route_file=resolve_route_file,
    )


def _api_handler(entry: RouteEntry, options: "ResolvedOptions", extractor: SignatureExtractor):
    app_root = options.app_root
    source_folder = options.source_folder
    resolve_types = options.resolve_types
    refine_type_name = options.config.refine_type_name

    def relpath_resolver(path: str) -> str:
        return posixpath.normpath(posixpath.join(source_folder, API_DIR, entry.import_path, path))

    def handler(updated_file: Optional[str] = None) -> ApiEntry:
        params_schema = entry.params_schema
        optional_params = not any(p.is_required for p in params_schema)

        cache = RouteCache(
            entry,
            app_root,
            source_folder,
            extra_context={"resolve_types": resolve_types},
        )
        record = cache.get(validate=True)

        if record is None:
            log.debug("resolving %s", entry.name)
            if updated_file:
                extractor.refresh(updated_file)

            signature = extractor.resolve_route_signature(
                entry,
                optional_params=optional_params,
                relpath_resolver=relpath_resolver,
            )

            refinements = {r.index: r.text for r in signature.params_refinements or ()}
            numeric_params = tuple(
                p.name for i, p in enumerate(params_schema) if refinements.get(i) == "number"
            )

            params = ApiParams(id=params_id(entry.name), param_specs=params_schema)

            types_content = render(
                TYPES_FILE,
                {
                    "params": params,
                    "params_schema": [
                        {**p.model_dump(), "refinement": refinements.get(i)}
                        for i, p in enumerate(params_schema)
                    ],
                    "type_declarations": signature.type_declarations,
                    "payload_types": signature.payload_types,
                    "response_types": signature.response_types,
                },
            )

            resolved_types = None
            if resolve_types:
                overrides = {refine_type_name: refine_type_name}
                for t in (*signature.payload_types, *signature.response_types):
                    if t.skip_validation:
                        overrides[t.id] = "never"
                resolved_types = {
                    t.name: t
                    for t in extractor.literal_types(
                        types_content,
                        overrides=overrides,
                        with_properties=[params.id, *(t.id for t in signature.payload_types)],
                        formatters=options.formatters,
                    )
                }

            types_file = options.paths().resolve("api_lib", entry.import_path, TYPES_FILE_NAME)
            if resolved_types is not None:
                render_to_file(
                    types_file,
                    RESOLVED_TYPES_FILE,
                    {"resolved_types": list(resolved_types.values())},
                    overwrite=True,
                    formatters=options.formatters,
                )
                params = params.model_copy(update={"resolved_type": resolved_types.get(params.id)})
            else:
                write_file(types_file, types_content, overwrite=True, formatters=options.formatters)

            def for_cache(t):
                # raw text was only needed for types.ts
                return t.model_copy(
                    update={
                        "text": None,
                        "resolved_type": (resolved_types or {}).get(t.id),
                    }
                )

            record = cache.persist(
                signature.referenced_files,
                params=params,
                methods=signature.methods,
                type_declarations=signature.type_declarations,
                numeric_params=numeric_params,
                payload_types=tuple(for_cache(t) for t in signature.payload_types),
                response_types=tuple(for_cache(t) for t in signature.response_types),
            )
        else:
            log.debug("cache hit for %s", entry.name)

        route = ApiRoute(
            **entry.model_dump(),
            params=record.params,
            numeric_params=record.numeric_params,
            optional_params=optional_params,
            methods=record.methods,
            type_declarations=record.type_declarations or (),
            payload_types=record.payload_types,
            response_types=record.response_types,
            # stored relative to the app root
            referenced_files=tuple(str((app_root / rel).resolve()) for rel in record.referenced_files or {}),
        )
        return ApiEntry(route=route)

    return handler


def _page_handler(entry: RouteEntry):
    def handler(updated_file: Optional[str] = None) -> PageEntry:
        route = PageRoute(**entry.model_dump(), params=PageParams(param_specs=entry.params_schema))
        return PageEntry(route=route)

    return handler
