from __future__ import annotations

from typing import Optional

_OPEN = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSE = {v: k for k, v in _OPEN.items()}


def mask(text: str) -> str:
    """
    Same-length copy of `text` with comments and string literal contents
    blanked out, so brackets and keywords inside them are never matched.
    Offsets in the mask are valid offsets into `text`.
    """
    out = list(text)
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if c == "/" and nxt == "/":
            j = text.find("\n", i)
            j = n if j == -1 else j
            out[i:j] = " " * (j - i)
            i = j
        elif c == "/" and nxt == "*":
            j = text.find("*/", i + 2)
            j = n if j == -1 else j + 2
            out[i:j] = [ch if ch == "\n" else " " for ch in text[i:j]]
            i = j
        elif c in "\"'`":
            j = i + 1
            while j < n and text[j] != c:
                j += 2 if text[j] == "\\" else 1
            j = min(j, n - 1)
            out[i + 1 : j] = " " * (j - i - 1)
            i = j + 1
        else:
            i += 1
    return "".join(out)


def find_closing(masked: str, start: int) -> Optional[int]:
    """Index of the bracket closing the one at `start`, or None if unbalanced.

    `=>` is not treated as a closing angle bracket.
    """
    stack = [masked[start]]
    for i in range(start + 1, len(masked)):
        c = masked[i]
        if c == ">" and masked[i - 1] == "=":
            continue
        if c in _OPEN:
            if c != "<" or stack[-1] == "<" or _looks_generic(masked, i):
                stack.append(c)
            continue
        if c not in _CLOSE:
            continue
        if c == ">":
            if stack[-1] != "<":
                # comparison operator inside an expression
                continue
        else:
            # a `<` that was really "less than" never gets closed
            while len(stack) > 1 and stack[-1] == "<":
                stack.pop()
            if stack[-1] != _CLOSE[c]:
                return None
        stack.pop()
        if not stack:
            return i
    return None


def _looks_generic(masked: str, i: int) -> bool:
    # `Foo<`, `Array<` or `< ` right after an identifier opens type arguments
    j = i - 1
    while j >= 0 and masked[j] == " ":
        j -= 1
    return j >= 0 and (masked[j].isalnum() or masked[j] in "_$")


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split `text` on `sep` where it is not nested in any bracket."""
    masked = mask(text)
    parts: list[str] = []
    depth = 0
    last = 0
    for i, c in enumerate(masked):
        if c == ">" and i and masked[i - 1] == "=":
            continue
        if c in _OPEN:
            depth += 1
        elif c in _CLOSE:
            depth -= 1
        elif c in sep and depth == 0:
            parts.append(text[last:i])
            last = i + 1
    parts.append(text[last:])
    return [p.strip() for p in parts if p.strip()]


def depth_map(masked: str) -> list[int]:
    """Bracket depth ({[( only) at every offset of `masked`."""
    depths = []
    depth = 0
    for c in masked:
        if c in "{[(":
            depth += 1
        elif c in "}])":
            depth = max(depth - 1, 0)
        depths.append(depth)
    return depths


def strip_leading_comments(text: str) -> tuple[str, str]:
    """Returns (leading block comments, rest)."""
    rest = text.lstrip()
    comments = []
    while rest.startswith("/*"):
        end = rest.find("*/")
        if end == -1:
            break
        comments.append(rest[: end + 2])
        rest = rest[end + 2 :].lstrip()
    return "\n".join(comments), rest
