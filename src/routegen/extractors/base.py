from __future__ import annotations

from typing import Callable, Iterable, Mapping, Protocol, Sequence

from routegen.domain.models import ResolvedType, RouteEntry, RouteSignature
from routegen.render.renderer import Formatter


class SignatureExtractor(Protocol):
    """Reads an API route module and reports its typed signature.

    Implementations may cache parsed sources; `refresh` drops that cache for
    one file so the next extraction sees its new content.
    """

    def resolve_route_signature(
        self,
        route: RouteEntry,
        *,
        optional_params: bool,
        relpath_resolver: Callable[[str], str],
    ) -> RouteSignature: ...

    def refresh(self, file: str) -> None: ...

    def literal_types(
        self,
        text: str,
        *,
        overrides: Mapping[str, str],
        with_properties: Sequence[str],
        formatters: Iterable[Formatter] = (),
    ) -> list[ResolvedType]: ...
