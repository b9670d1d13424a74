from __future__ import annotations

from typing import Iterable, Optional, Sequence, TypeVar

from routegen.generators.base import GeneratorConstructor
from routegen.routes.tokens import path_pattern, static_segments

RESERVED_KINDS = ("api", "fetch", "ssr")

T = TypeVar("T")


def _find_kind(generators: Sequence[GeneratorConstructor], kind: str) -> Optional[GeneratorConstructor]:
    return next((g for g in generators if g.kind == kind), None)


def order_generators(
    *,
    stub: GeneratorConstructor,
    api: GeneratorConstructor,
    fetch: GeneratorConstructor,
    user: Sequence[GeneratorConstructor] = (),
) -> list[GeneratorConstructor]:
    """
    Fixed pipeline order:
      1. stub (placeholder sources so the first build type-checks)
      2. api   - user generator with kind="api" replaces the built-in
      3. fetch - same rule
      4. user generators without a reserved kind, in registration order
      5. ssr, if any, always last: it bundles what 1-4 produced
    """
    ordered = [
        stub,
        _find_kind(user, "api") or api,
        _find_kind(user, "fetch") or fetch,
    ]
    ordered.extend(g for g in user if g.kind not in RESERVED_KINDS)

    ssr = _find_kind(user, "ssr")
    if ssr is not None:
        ordered.append(ssr)
    return ordered


def sort_by_specificity(routes: Iterable[T], *, tokens=None, path=None) -> list[T]:
    """
    More specific (static) routes first, so that /users/account is matched
    before /users/:id. Ties are broken by the router path, case sensitive.

    `tokens`/`path` pick the path tokens and router path out of each item;
    by default items are routes and the path is built from their tokens.
    """
    tokens = tokens or (lambda r: r.path_tokens)
    path = path or (lambda r: path_pattern(tokens(r)))
    return sorted(routes, key=lambda r: (-static_segments(tokens(r)), path(r)))
