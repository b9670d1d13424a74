from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from routegen.config import ProjectConfig
from routegen.domain.models import ParamRefinement, RouteSignature
from routegen.options import ResolvedOptions


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


class FakeExtractor:
    """Records calls; returns canned signatures keyed by route name."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.refreshed: list[str] = []
        self.referenced: dict[str, list[str]] = {}
        self.refinements: dict[str, list[str]] = {}
        self.fail_on: set[str] = set()

    def resolve_route_signature(self, route, *, optional_params, relpath_resolver):
        self.calls.append(route.name)
        if route.name in self.fail_on:
            raise RuntimeError(f"cannot extract {route.name}")
        refinements = self.refinements.get(route.name)
        return RouteSignature(
            methods=("GET",),
            params_refinements=(
                tuple(ParamRefinement(index=i, text=t) for i, t in enumerate(refinements))
                if refinements is not None
                else None
            ),
            referenced_files=tuple(self.referenced.get(route.name, ())),
        )

    def refresh(self, file):
        self.refreshed.append(file)

    def literal_types(self, text, *, overrides, with_properties, formatters=()):
        return []


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def make_options(app_root: Path):
    def _make(extractor=None, generators=(), **config) -> ResolvedOptions:
        return ResolvedOptions(
            config=ProjectConfig(app_root=app_root, **config),
            command="build",
            generators=tuple(generators),
            formatters=(),
            extractor=extractor if extractor is not None else FakeExtractor(),
        )

    return _make
