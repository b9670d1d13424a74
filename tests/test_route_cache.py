import json
from pathlib import Path

from conftest import write

from routegen.domain.models import ApiParams
from routegen.routes.identity import build_route_entry
from routegen.store.cache import RouteCache, file_hash


def _route(app_root: Path):
    entry = build_route_entry("api", "books/[id]/index.ts", app_root, "src")
    write(Path(entry.file_fullpath), "export default 1;\n")
    return entry


def _persist(cache: RouteCache, referenced=()):
    return cache.persist(
        referenced,
        params=ApiParams(id="ParamsT1"),
        methods=("GET",),
        type_declarations=(),
    )


def test_missing_and_empty_files_hash_to_zero(tmp_path: Path):
    assert file_hash(tmp_path / "nope.ts") == 0
    write(tmp_path / "empty.ts", "")
    assert file_hash(tmp_path / "empty.ts") == 0


def test_hash_depends_on_extra_context(tmp_path: Path):
    write(tmp_path / "a.ts", "x")
    assert file_hash(tmp_path / "a.ts") != file_hash(tmp_path / "a.ts", {"resolve_types": True})


def test_persist_then_validated_get_hits(app_root: Path):
    route = _route(app_root)
    cache = RouteCache(route, app_root, "src")

    assert cache.get(validate=True) is None

    record = _persist(cache)
    assert cache.cache_file == app_root / "lib" / "src" / "{api}" / "books" / "[id]" / "cache.json"
    assert cache.get(validate=True) == record


def test_referenced_files_are_stored_relative(app_root: Path):
    route = _route(app_root)
    shared = app_root / "src" / "types" / "shared.ts"
    write(shared, "export type A = string;\n")

    _persist(RouteCache(route, app_root, "src"), [str(shared)])

    data = json.loads((app_root / "lib/src/{api}/books/[id]/cache.json").read_text())
    assert list(data["referenced_files"]) == ["src/types/shared.ts"]


def test_changed_route_file_misses(app_root: Path):
    route = _route(app_root)
    cache = RouteCache(route, app_root, "src")
    _persist(cache)

    write(Path(route.file_fullpath), "export default 2;\n")
    assert cache.get(validate=True) is None
    # unvalidated read still returns the stale record
    assert cache.get() is not None


def test_changed_referenced_file_misses(app_root: Path):
    route = _route(app_root)
    shared = app_root / "src" / "types" / "shared.ts"
    write(shared, "export type A = string;\n")

    cache = RouteCache(route, app_root, "src")
    _persist(cache, [str(shared)])
    assert cache.get(validate=True) is not None

    write(shared, "export type A = number;\n")
    assert cache.get(validate=True) is None


def test_deleted_referenced_file_misses(app_root: Path):
    route = _route(app_root)
    shared = app_root / "src" / "types" / "shared.ts"
    write(shared, "export type A = string;\n")

    cache = RouteCache(route, app_root, "src")
    _persist(cache, [str(shared)])
    shared.unlink()

    assert cache.get(validate=True) is None


def test_different_extra_context_misses(app_root: Path):
    route = _route(app_root)
    _persist(RouteCache(route, app_root, "src", {"resolve_types": False}))

    assert RouteCache(route, app_root, "src", {"resolve_types": True}).get(validate=True) is None


def test_corrupt_or_partial_records_are_misses(app_root: Path):
    route = _route(app_root)
    cache = RouteCache(route, app_root, "src")

    cache.cache_file.parent.mkdir(parents=True)
    cache.cache_file.write_text("{not json", encoding="utf-8")
    assert cache.get() is None

    partial = {
        "hash": file_hash(route.file_fullpath),
        "params": {"id": "ParamsT1"},
        "referenced_files": {},
    }
    cache.cache_file.write_text(json.dumps(partial), encoding="utf-8")
    assert cache.get() is not None
    # no type_declarations: treated as absent
    assert cache.get(validate=True) is None
