from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from routegen.domain.models import EventKind, RouteSnapshot, WatcherEvent
from routegen.generators.base import GeneratorConstructor
from routegen.options import ResolvedOptions
from routegen.render.renderer import render_to_file
from routegen.render.templates import STUB_API_ROUTE, STUB_PAGES

log = logging.getLogger(__name__)

NAME = "Stub Generator"

DEFAULT_USE_IMPORT = "@routegen/api"


def _template_for(route, templates: list[tuple[str, str]], folder_default: str) -> str:
    for pattern, template in templates:
        if fnmatchcase(route.name, pattern):
            return template
    return folder_default


def factory(options: ResolvedOptions, config: Mapping[str, Any]):
    """
    Fills blank route files with a working placeholder, so a freshly
    created `api/users/[id]/index.ts` builds before anyone edits it.
    Non-blank files are never touched.
    """
    use_import = config.get("use_import", DEFAULT_USE_IMPORT)
    # route name glob -> template
    templates = list((config.get("templates") or {}).items())
    formatters = options.formatters

    def write_stubs(entries: Iterable) -> None:
        for entry in entries:
            route = entry.route
            path = Path(route.file_fullpath)
            if entry.kind == "api":
                template = _template_for(route, templates, STUB_API_ROUTE)
            else:
                default = STUB_PAGES.get(path.suffix)
                if default is None:
                    continue
                template = _template_for(route, templates, default)
            if render_to_file(
                path,
                template,
                {"route": route, "use_import": use_import},
                formatters=formatters,
            ):
                log.debug("stubbed %s", path)

    def watch_handler(entries: RouteSnapshot, event: Optional[WatcherEvent] = None) -> None:
        if event is None:
            write_stubs(entries)
        elif event.kind is EventKind.CREATE:
            write_stubs(e for e in entries if e.route.file_fullpath == event.file)

    return watch_handler


def generator(config: Optional[Mapping[str, Any]] = None) -> GeneratorConstructor:
    config = dict(config or {})
    return GeneratorConstructor(
        name=NAME,
        module_import=__name__,
        module_config=config,
        factory=lambda options: factory(options, config),
    )
