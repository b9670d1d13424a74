from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from routegen.capabilities import CapabilityLoader
from routegen.config import ProjectConfig
from routegen.domain.models import RouteSnapshot
from routegen.options import Command, resolve_options
from routegen.orchestrator.session import RouteSession
from routegen.progress import SpinnerHost


@dataclass(frozen=True)
class BuildResult:
    routes: RouteSnapshot
    generators: list[str]
    failures: int

    @property
    def ok(self) -> bool:
        return self.failures == 0


def open_session(
    config: ProjectConfig,
    spinners: SpinnerHost,
    command: Command = "build",
    loader: Optional[CapabilityLoader] = None,
) -> RouteSession:
    options = resolve_options(config, command, loader=loader)
    return RouteSession(options, spinners)


def run_build(
    config: ProjectConfig,
    spinners: SpinnerHost,
    loader: Optional[CapabilityLoader] = None,
) -> BuildResult:
    """One generator pass over every route, no watching."""
    session = open_session(config, spinners, "build", loader=loader)
    session.start()
    return BuildResult(
        routes=session.snapshot(),
        generators=[name for name, _ in session.watch_handlers],
        failures=session.failures,
    )


def resolve_routes(
    config: ProjectConfig,
    spinners: SpinnerHost,
    loader: Optional[CapabilityLoader] = None,
) -> BuildResult:
    """Resolve routes only; generators are loaded but never run."""
    session = open_session(config, spinners, "build", loader=loader)
    session.resolve_all()
    return BuildResult(routes=session.snapshot(), generators=[], failures=session.failures)
