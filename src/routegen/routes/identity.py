from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path
from typing import Iterable, Optional

from routegen.domain.models import RouteEntry
from routegen.paths import API_DIR, PAGES_DIR
from routegen.routes.tokens import crc32, parse_path_tokens

PAGE_EXTENSIONS_BY_FRAMEWORK: dict[str, tuple[str, ...]] = {
    "react": ("tsx",),
    "solid": ("tsx",),
    "vue": ("vue",),
    "svelte": ("svelte",),
}
DEFAULT_PAGE_EXTENSIONS = ("ts", "tsx", "vue", "svelte")

_EDGE_NON_WORD = re.compile(r"^\W+|\W+$", re.ASCII)
_NON_WORD_RUN = re.compile(r"\W+", re.ASCII)


def page_extensions_for(framework: Optional[str]) -> tuple[str, ...]:
    if framework is None:
        return DEFAULT_PAGE_EXTENSIONS
    return PAGE_EXTENSIONS_BY_FRAMEWORK[framework]


def resolve_route_file(
    file: str | Path,
    app_root: Path,
    source_folder: str,
    page_extensions: Iterable[str] = DEFAULT_PAGE_EXTENSIONS,
) -> Optional[tuple[str, str]]:
    """
    Returns (folder, file relative to folder) for a routable file, None otherwise.

    The file must be:
    - under <app_root>/<source_folder>
    - inside the api or pages folder
    - nested at least one directory deep (api/index.ts is not a route)
    - named index.ts (api) or index.<page ext> (pages)
    """
    rel = os.path.relpath(os.path.join(str(app_root), str(file)), str(app_root))
    parts = rel.replace(os.sep, "/").split("/")
    if len(parts) < 4:
        return None

    src, folder, *rest = parts
    if src != source_folder or not folder:
        return None

    filename = rest[-1]
    if folder == API_DIR:
        ok = filename == "index.ts"
    elif folder == PAGES_DIR:
        ok = filename in {f"index.{ext}" for ext in page_extensions}
    else:
        ok = False

    if not ok:
        return None
    return folder, "/".join(rest)


def import_name_for(import_path: str) -> str:
    """Legal, collision resistant identifier for `import_path` (which may hold brackets/dots)."""
    prefix = import_path.split("[")[0]
    prefix = _NON_WORD_RUN.sub("_", _EDGE_NON_WORD.sub("", prefix))
    return f"{prefix}_{crc32(import_path)}"


def build_route_entry(folder: str, file: str, app_root: Path, source_folder: str) -> RouteEntry:
    import_path = posixpath.dirname(file)
    path_tokens = tuple(parse_path_tokens(import_path))
    return RouteEntry(
        name="/".join(t.orig for t in path_tokens),
        folder=folder,
        file=file,
        file_fullpath=str(Path(app_root, source_folder, folder, file)),
        path_tokens=path_tokens,
        import_path=import_path,
        import_name=import_name_for(import_path),
    )
