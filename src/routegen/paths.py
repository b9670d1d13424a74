from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Directory names, relative to the source folder unless noted otherwise.
API_DIR = "api"
PAGES_DIR = "pages"

# Generated code lives under <app_root>/lib/<source_folder>/...
LIB_DIR = "lib"
API_LIB_DIR = "{api}"
FETCH_LIB_DIR = "{fetch}"

_SOURCE_DIRS = {
    "api": API_DIR,
    "pages": PAGES_DIR,
}

_LIB_DIRS = {
    "api_lib": API_LIB_DIR,
    "fetch_lib": FETCH_LIB_DIR,
}


@dataclass(frozen=True)
class PathResolver:
    """Maps a logical directory name to a path inside the project.

    `"@"` is the source folder itself, `"lib"` is the top level generated
    directory, `*_lib` names live under `lib/<source_folder>/`, anything else
    lives under the source folder.
    """

    app_root: Path | None
    source_folder: str

    def resolve(self, dir: str, *parts: str) -> Path:
        if dir == "@":
            base = Path(self.source_folder)
        elif dir == "lib":
            base = Path(LIB_DIR)
        elif dir in _LIB_DIRS:
            base = Path(LIB_DIR, self.source_folder, _LIB_DIRS[dir])
        elif dir in _SOURCE_DIRS:
            base = Path(self.source_folder, _SOURCE_DIRS[dir])
        else:
            raise KeyError(f"unknown directory: {dir}")

        if self.app_root is not None:
            base = self.app_root / base
        return base.joinpath(*parts)


def relative_to_root(file: str | Path, app_root: Path) -> str:
    """Repo-relative POSIX path, or the absolute path if `file` is outside the root."""
    p = Path(file).resolve()
    try:
        return p.relative_to(app_root.resolve()).as_posix()
    except ValueError:
        return p.as_posix()
