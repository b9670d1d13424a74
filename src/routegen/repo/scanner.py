from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from routegen.paths import API_DIR, PAGES_DIR
from routegen.repo.ignore import should_ignore_dir


def scan_source_files(root: Path, suffixes: tuple[str, ...], max_files: int | None = None) -> list[str]:
    """
    Absolute paths of files under `root` ending in one of `suffixes`,
    sorted so that discovery order is deterministic across platforms.
    """
    out: list[str] = []
    for dirpath, dirs, files in _walk(root):
        root_p = Path(dirpath)

        # prune ignored dirs
        dirs[:] = [d for d in dirs if not should_ignore_dir(root_p / d)]

        for f in files:
            if f.endswith(suffixes):
                out.append(str((root_p / f).resolve()))
                if max_files is not None and len(out) >= max_files:
                    return sorted(out)
    return sorted(out)


def scan_route_files(
    source_root: Path,
    page_extensions: tuple[str, ...],
    is_route: Optional[Callable[[str], bool]] = None,
) -> list[str]:
    """Candidate route modules under <source_root>/api and <source_root>/pages."""
    candidates = []
    for folder, suffixes in (
        (API_DIR, (".ts",)),
        (PAGES_DIR, tuple(f".{ext}" for ext in page_extensions)),
    ):
        base = source_root / folder
        if base.is_dir():
            candidates.extend(scan_source_files(base, suffixes))
    if is_route is not None:
        candidates = [c for c in candidates if is_route(c)]
    return candidates


def _walk(root: Path):
    # patched in tests
    return os.walk(root)
