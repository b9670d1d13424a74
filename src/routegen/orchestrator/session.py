from __future__ import annotations

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from watchfiles import Change, DefaultFilter, watch

from routegen.domain.models import (
    ApiEntry,
    EventKind,
    PageEntry,
    RouteResolver,
    RouteSnapshot,
    WatcherEvent,
    snapshot_routes,
)
from routegen.generators.base import WatchHandler
from routegen.options import ResolvedOptions
from routegen.progress import Spinner, SpinnerHost
from routegen.routes.resolvers import RoutesFactory, routes_factory

log = logging.getLogger(__name__)

Entry = Union[ApiEntry, PageEntry]

_EVENT_KINDS = {
    Change.added: EventKind.CREATE,
    Change.modified: EventKind.UPDATE,
    Change.deleted: EventKind.DELETE,
}


class SessionState(str, Enum):
    RESOLVING = "resolving"
    WATCHING = "watching"
    HANDLING = "handling"
    STOPPED = "stopped"


class _SessionFilter(DefaultFilter):
    """DefaultFilter (VCS dirs, editor swap files, ...) plus the session's own relevance test."""

    def __init__(self, session: "RouteSession") -> None:
        super().__init__()
        self.session = session

    def __call__(self, change: Change, path: str) -> bool:
        return super().__call__(change, path) and self.session.is_relevant(path)


class RouteSession:
    """
    Owns the live route map for one project.

    Resolvers are keyed by route file; resolved entries by the same key.
    Only the event handlers below mutate either map. Generators always
    get a deep copied snapshot.
    """

    def __init__(
        self,
        options: ResolvedOptions,
        spinners: SpinnerHost,
        routes: Optional[RoutesFactory] = None,
    ) -> None:
        self.options = options
        self.spinners = spinners

        routes = routes or routes_factory(options)
        self.resolvers: dict[str, RouteResolver] = dict(routes.resolvers)
        self.resolvers_factory = routes.resolvers_factory
        self.resolve_route_file = routes.resolve_route_file

        self.resolved: dict[str, Entry] = {}
        self.watch_handlers: list[tuple[str, WatchHandler]] = []
        self.state = SessionState.RESOLVING
        self.failures = 0

    # ----------------------------
    # initial pass
    # ----------------------------

    def start(self) -> None:
        """Resolve every route, build generators, run them once."""
        self.state = SessionState.RESOLVING
        self.resolve_all()
        self.init_generators()
        self.run_watch_handlers()
        self.state = SessionState.WATCHING

    def resolve_all(self) -> None:
        spinner = self.spinners.start("Resolving Routes")
        total = len(self.resolvers)
        for i, (file, resolver) in enumerate(list(self.resolvers.items()), start=1):
            spinner.append(f"[ {i} of {total} ] {resolver.name}")
            try:
                entry = resolver.handler()
            except Exception as exc:
                spinner = self._fail(spinner, exc, "Resolving Routes")
                continue
            self.resolved[entry.route.file_fullpath] = entry
        spinner.succeed()

    def init_generators(self) -> None:
        self.watch_handlers = []
        spinner = self.spinners.start("Initializing Generators")
        for gen in self.options.generators:
            spinner.append(gen.name)
            try:
                handler = gen.factory(self.options)
            except Exception as exc:
                spinner = self._fail(spinner, exc, "Initializing Generators")
                continue
            self.watch_handlers.append((gen.name, handler))
        spinner.succeed()

    def snapshot(self) -> RouteSnapshot:
        return snapshot_routes(self.resolved.values())

    def run_watch_handlers(self, event: Optional[WatcherEvent] = None) -> None:
        """Every generator, in order, gets its own copy of the current routes."""
        spinner = self.spinners.start("Running Generators")
        for name, handler in self.watch_handlers:
            spinner.append(name)
            try:
                handler(self.snapshot(), event)
            except Exception as exc:
                spinner = self._fail(spinner, exc, "Running Generators")
        spinner.succeed()

    # ----------------------------
    # events
    # ----------------------------

    def is_relevant(self, path: str) -> bool:
        """Route files, plus any file some resolved API route depends on."""
        if self.resolve_route_file(path) is not None:
            return True
        return bool(self._referencing(str(Path(path).resolve())))

    def classify(self, change: Change, path: str) -> Optional[WatcherEvent]:
        kind = _EVENT_KINDS.get(change)
        if kind is None:
            return None
        if kind is not EventKind.DELETE and os.path.isdir(path):
            # directory events carry nothing for us
            return None
        if not self.is_relevant(path):
            log.debug("ignoring %s %s", change.name, path)
            return None
        return WatcherEvent(kind=kind, file=str(Path(path).resolve()))

    def handle(self, event: WatcherEvent) -> None:
        self.state = SessionState.HANDLING
        try:
            match event.kind:
                case EventKind.CREATE:
                    self.on_create(event.file)
                case EventKind.UPDATE:
                    self.on_update(event.file)
                case EventKind.DELETE:
                    self.on_delete(event.file)
            self.run_watch_handlers(event)
        finally:
            self.state = SessionState.WATCHING

    def on_create(self, file: str) -> None:
        for key, resolver in self.resolvers_factory([file]).items():
            spinner = self.spinners.start(f"Resolving {resolver.name} Route")
            try:
                entry = resolver.handler(file)
            except Exception as exc:
                self._fail(spinner, exc)
                continue
            self.resolvers[key] = resolver
            self.resolved[entry.route.file_fullpath] = entry
            spinner.succeed()

    def on_update(self, file: str) -> None:
        related: dict[str, RouteResolver] = {}
        if file in self.resolvers:
            related[file] = self.resolvers[file]
        for key in self._referencing(file):
            if key in self.resolvers:
                related[key] = self.resolvers[key]

        start_text = f"Updating {len(related)} Routes"
        spinner = self.spinners.start(start_text)
        for resolver in related.values():
            spinner.append(resolver.name)
            try:
                entry = resolver.handler(file)
            except Exception as exc:
                spinner = self._fail(spinner, exc, start_text)
                continue
            self.resolved[entry.route.file_fullpath] = entry
        spinner.succeed()

    def on_delete(self, file: str) -> None:
        # TODO: drop the route from both maps and remove its generated lib files
        log.debug("delete of %s not handled yet", file)

    def _referencing(self, file: str) -> list[str]:
        return [
            key
            for key, entry in self.resolved.items()
            if entry.kind == "api" and file in entry.route.referenced_files
        ]

    def _fail(self, spinner: Spinner, exc: Exception, restart: Optional[str] = None) -> Optional[Spinner]:
        self.failures += 1
        log.debug("task failed", exc_info=exc)
        spinner.failed(exc)
        return self.spinners.start(restart) if restart else None

    # ----------------------------
    # watch loop
    # ----------------------------

    def watch(self, stop_event: Optional[threading.Event] = None) -> None:
        """Blocks, handling change batches until `stop_event` is set or the process is interrupted."""
        root = self.options.config.source_root
        watcher = self.options.config.watcher
        log.debug("watching %s", root)
        for changes in watch(
            root,
            watch_filter=_SessionFilter(self),
            debounce=watcher.delay,
            force_polling=watcher.force_polling,
            stop_event=stop_event,
        ):
            for change, path in sorted(changes, key=lambda c: c[1]):
                event = self.classify(change, path)
                if event is not None:
                    self.handle(event)
        self.state = SessionState.STOPPED
