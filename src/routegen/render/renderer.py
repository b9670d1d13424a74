from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Union

from jinja2 import Environment, StrictUndefined, Template

# (text, file_path) -> text
Formatter = Callable[[str, str], str]

Overwrite = Union[bool, Callable[[str], bool]]


def blank_only(content: str) -> bool:
    return content.strip() == ""


_env = Environment(
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
    autoescape=False,
)


@lru_cache(maxsize=256)
def _compile(source: str) -> Template:
    return _env.from_string(source)


def render(template: str, context: Mapping[str, Any]) -> str:
    return _compile(template).render(**context)


def apply_formatters(text: str, path: str | Path, formatters: Iterable[Formatter] = ()) -> str:
    for fmt in formatters:
        text = fmt(text, str(path))
    return text


def render_to_file(
    path: str | Path,
    template: str,
    context: Mapping[str, Any],
    *,
    overwrite: Overwrite = blank_only,
    formatters: Iterable[Formatter] = (),
) -> bool:
    """Render `template` into `path`.

    An existing file is replaced only when `overwrite` is True or returns True
    for its current content, so hand-edited route sources survive regeneration.
    Returns whether the file was written.
    """
    path = Path(path)
    if not _may_write(path, overwrite):
        return False
    return write_file(path, render(template, context), overwrite=True, formatters=formatters)


def write_file(
    path: str | Path,
    text: str,
    *,
    overwrite: Overwrite = blank_only,
    formatters: Iterable[Formatter] = (),
) -> bool:
    """Same overwrite rules as `render_to_file`, for text that is already rendered."""
    path = Path(path)
    if not _may_write(path, overwrite):
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(apply_formatters(text, path, formatters), encoding="utf-8")
    return True


def _may_write(path: Path, overwrite: Overwrite) -> bool:
    if not path.exists():
        return True
    if callable(overwrite):
        return overwrite(path.read_text(encoding="utf-8"))
    return bool(overwrite)
