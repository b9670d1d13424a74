from __future__ import annotations

from pathlib import Path

DEFAULT_IGNORES = {
    ".git",
    "node_modules",
    "dist",
    "build",
    ".cache",
    ".turbo",
    ".svelte-kit",
    ".nuxt",
    "coverage",
}


def should_ignore_dir(dir_path: Path) -> bool:
    # hidden dirs as well
    return dir_path.name in DEFAULT_IGNORES or dir_path.name.startswith(".")
