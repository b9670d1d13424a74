from pathlib import Path

from routegen.generators.base import GeneratorConstructor
from routegen.generators.ordering import order_generators, sort_by_specificity
from routegen.routes.identity import build_route_entry


def gen(name: str, kind=None) -> GeneratorConstructor:
    return GeneratorConstructor(name=name, module_import=name, factory=lambda options: None, kind=kind)


STUB, API, FETCH = gen("stub"), gen("api", "api"), gen("fetch", "fetch")


def names(gens) -> list[str]:
    return [g.name for g in gens]


def test_builtins_only():
    assert names(order_generators(stub=STUB, api=API, fetch=FETCH)) == ["stub", "api", "fetch"]


def test_user_generators_follow_builtins_in_registration_order():
    user = [gen("openapi"), gen("docs")]
    assert names(order_generators(stub=STUB, api=API, fetch=FETCH, user=user)) == [
        "stub",
        "api",
        "fetch",
        "openapi",
        "docs",
    ]


def test_user_kind_replaces_builtin():
    user = [gen("my-fetch", "fetch"), gen("extra"), gen("my-api", "api")]
    assert names(order_generators(stub=STUB, api=API, fetch=FETCH, user=user)) == [
        "stub",
        "my-api",
        "my-fetch",
        "extra",
    ]


def test_ssr_always_last():
    user = [gen("ssr", "ssr"), gen("a"), gen("b")]
    assert names(order_generators(stub=STUB, api=API, fetch=FETCH, user=user))[-1] == "ssr"


def test_static_routes_sort_before_dynamic(tmp_path: Path):
    routes = [
        build_route_entry("api", f"{p}/index.ts", tmp_path, "src")
        for p in ("users/[id]", "users/account", "posts/[[page]]", "posts")
    ]
    assert [r.name for r in sort_by_specificity(routes)] == [
        "users/account",
        "posts",
        "posts/[[page]]",
        "users/[id]",
    ]


def test_ties_break_on_path_pattern(tmp_path: Path):
    routes = [
        build_route_entry("api", f"{p}/index.ts", tmp_path, "src")
        for p in ("b", "a", "B")
    ]
    assert [r.name for r in sort_by_specificity(routes)] == ["B", "a", "b"]
