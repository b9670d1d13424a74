from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from routegen.capabilities import (
    EXTRACTOR_ATTR,
    FORMATTER_ATTR,
    GENERATOR_ATTR,
    CapabilityLoader,
    ImportCapabilityLoader,
)
from routegen.config import ModuleRef, ProjectConfig
from routegen.errors import CapabilityError
from routegen.extractors.base import SignatureExtractor
from routegen.generators.base import GeneratorConstructor
from routegen.generators.ordering import order_generators
from routegen.paths import PathResolver
from routegen.render.renderer import Formatter
from routegen.routes.identity import page_extensions_for

Command = Literal["build", "serve"]

STUB_GENERATOR = ModuleRef(module="routegen.generators.stub")
API_GENERATOR = ModuleRef(module="routegen.generators.api")
FETCH_GENERATOR = ModuleRef(module="routegen.generators.fetch")
DEFAULT_EXTRACTOR = ModuleRef(module="routegen.extractors.typescript.signature")


@dataclass(frozen=True)
class ResolvedOptions:
    """Everything a session needs, with capabilities already loaded.

    Only `config` is serializable; the rest is rebuilt from it on each side
    of the worker boundary by `resolve_options`.
    """

    config: ProjectConfig
    command: Command
    generators: tuple[GeneratorConstructor, ...]
    formatters: tuple[Formatter, ...]
    extractor: SignatureExtractor

    @property
    def app_root(self) -> Path:
        return self.config.app_root

    @property
    def source_folder(self) -> str:
        return self.config.source_folder

    @property
    def page_extensions(self) -> tuple[str, ...]:
        return page_extensions_for(self.config.framework)

    @property
    def resolve_types(self) -> bool:
        return any(g.resolve_types for g in self.generators)

    def paths(self) -> PathResolver:
        return PathResolver(self.app_root, self.source_folder)


def _load_generator(loader: CapabilityLoader, ref: ModuleRef) -> GeneratorConstructor:
    gen = loader.load(ref, GENERATOR_ATTR)
    if not isinstance(gen, GeneratorConstructor):
        raise CapabilityError(ref.module, "generator factory must return a GeneratorConstructor")
    return gen


def resolve_options(
    config: ProjectConfig,
    command: Command,
    loader: Optional[CapabilityLoader] = None,
) -> ResolvedOptions:
    loader = loader or ImportCapabilityLoader(base_dir=config.app_root)

    generators = order_generators(
        stub=_load_generator(loader, STUB_GENERATOR),
        api=_load_generator(loader, API_GENERATOR),
        fetch=_load_generator(loader, FETCH_GENERATOR),
        user=[_load_generator(loader, ref) for ref in config.generators],
    )

    extractor_ref = config.extractor or DEFAULT_EXTRACTOR.model_copy(
        update={"config": {"refine_type_name": config.refine_type_name}}
    )

    return ResolvedOptions(
        config=config,
        command=command,
        generators=tuple(generators),
        formatters=tuple(loader.load(ref, FORMATTER_ATTR) for ref in config.formatters),
        extractor=loader.load(extractor_ref, EXTRACTOR_ATTR),
    )
