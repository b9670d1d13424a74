from __future__ import annotations

import re
import zlib
from typing import Optional

from routegen.domain.models import ParamSpec, PathToken

_EXT = re.compile(r"\.([\w-]+)$", re.ASCII)
_NON_WORD = re.compile(r"\W", re.ASCII)

# checked in this order: a naive required match must not shadow the other two
_REST = re.compile(r"^\[\.\.\.([^\]]+)\]$")
_OPTIONAL = re.compile(r"^\[\[([^\]]+)\]\]$")
_REQUIRED = re.compile(r"^\[([^\]]+)\]$")


def crc32(text: str) -> int:
    return zlib.crc32(text.encode("utf-8"))


def _split_ext(orig: str) -> tuple[str, str]:
    m = _EXT.search(orig)
    if m is None:
        return orig, ""
    return orig[: m.start()], m.group(0)


def _param(base: str, orig: str) -> Optional[ParamSpec]:
    for regex, flags in (
        (_REST, {"is_rest": True}),
        (_OPTIONAL, {"is_optional": True}),
        (_REQUIRED, {"is_required": True}),
    ):
        m = regex.match(base)
        if m is None:
            continue
        name = m.group(1) or base
        if _NON_WORD.search(name):
            const = f"{_NON_WORD.sub('_', name)}_{crc32(orig)}"
        else:
            const = name
        return ParamSpec(name=name, const=const, **flags)
    return None


def parse_path_tokens(path: str) -> list[PathToken]:
    """
    Split a route path into one token per `/` segment:
      books           -> static
      [id].json       -> required param `id`, ext `.json`
      [[page]]        -> optional param `page`
      [...path]       -> rest param `path`
    A leading `index` segment keeps `orig`/`base` but gets `path="/"`.
    """
    tokens: list[PathToken] = []
    for i, orig in enumerate(path.split("/")):
        base, ext = _split_ext(orig)
        param = _param(base, orig) if base.startswith("[") else None
        tokens.append(
            PathToken(
                orig=orig,
                base=base,
                path="/" if i == 0 and orig == "index" else orig,
                ext=ext,
                param=param,
            )
        )
    return tokens


def static_segments(tokens) -> int:
    return sum(1 for t in tokens if t.param is None)


def path_pattern(tokens) -> str:
    """
    Router path for a list of tokens:
      users/[id]/[[page]] -> users/:id/{/:page}
      docs/[...path]      -> docs/{*path}
    """
    parts: list[str] = []
    for t in tokens:
        p = t.param
        if p is not None and p.is_rest:
            parts.append(f"{{*{p.name}}}")
        elif p is not None and p.is_optional:
            parts.append(f"{{/:{p.name}}}")
        elif p is not None:
            parts.append(f":{p.name}")
        elif t.path != "/":
            parts.append(t.path)
    return "/".join(parts).replace("+", "\\\\+")
