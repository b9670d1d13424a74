from pathlib import Path

from conftest import write

from routegen.repo import scanner
from routegen.repo.scanner import scan_route_files, scan_source_files


def test_scan_source_files_skips_ignored_dirs(tmp_path: Path):
    write(tmp_path / "a.ts", "")
    write(tmp_path / "nested" / "b.ts", "")
    write(tmp_path / "node_modules" / "pkg" / "c.ts", "")
    write(tmp_path / ".cache" / "d.ts", "")
    write(tmp_path / "e.js", "")

    files = scan_source_files(tmp_path, (".ts",))

    assert [Path(p).relative_to(tmp_path.resolve()).as_posix() for p in files] == ["a.ts", "nested/b.ts"]


def test_scan_source_files_respects_max_files(tmp_path: Path):
    for name in ("a", "b", "c"):
        write(tmp_path / f"{name}.ts", "")

    assert len(scan_source_files(tmp_path, (".ts",), max_files=2)) == 2


def test_scan_route_files_uses_folder_extensions(tmp_path: Path):
    write(tmp_path / "api" / "users" / "index.ts", "")
    write(tmp_path / "api" / "users" / "index.tsx", "")
    write(tmp_path / "pages" / "about" / "index.tsx", "")
    write(tmp_path / "pages" / "about" / "index.ts", "")
    write(tmp_path / "other" / "index.ts", "")

    files = scan_route_files(tmp_path, ("tsx",))
    rel = sorted(Path(p).relative_to(tmp_path.resolve()).as_posix() for p in files)
    assert rel == ["api/users/index.ts", "pages/about/index.tsx"]

    only_api = scan_route_files(tmp_path, ("tsx",), is_route=lambda p: "/api/" in Path(p).as_posix())
    assert len(only_api) == 1


def test_missing_folders_yield_nothing(tmp_path: Path):
    assert scan_route_files(tmp_path / "nope", ("tsx",)) == []


def test_scan_order_does_not_depend_on_walk_order(tmp_path: Path, monkeypatch):
    root = tmp_path.resolve()
    walked = [
        (str(root), ["z", "a"], ["b.ts", "a.ts"]),
        (str(root / "z"), [], ["c.ts"]),
        (str(root / "a"), [], ["d.ts"]),
    ]
    monkeypatch.setattr(scanner, "_walk", lambda r: iter(walked))

    files = scanner.scan_source_files(root, (".ts",))
    assert [Path(p).relative_to(root).as_posix() for p in files] == ["a.ts", "a/d.ts", "b.ts", "z/c.ts"]
