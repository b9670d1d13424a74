from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping, Optional

from routegen.domain.models import RouteSnapshot, WatcherEvent

if TYPE_CHECKING:
    from routegen.options import ResolvedOptions

GeneratorKind = Literal["api", "fetch", "ssr"]

# watch_handler(entries, event=None); event None means "initial pass, process everything"
WatchHandler = Callable[[RouteSnapshot, Optional[WatcherEvent]], None]

GeneratorFactory = Callable[["ResolvedOptions"], WatchHandler]


@dataclass(frozen=True)
class GeneratorConstructor:
    """A generator as registered in the project config.

    `module_import`/`module_config` are what the dev worker uses to rebuild
    this object in its own process; `factory` itself never crosses.
    """

    name: str
    module_import: str
    factory: GeneratorFactory
    module_config: Mapping[str, Any] = field(default_factory=dict)
    # built-ins are matched by kind; user generators with a kind replace them
    kind: Optional[GeneratorKind] = None
    # ask the resolver for fully resolved literal types
    resolve_types: bool = False
