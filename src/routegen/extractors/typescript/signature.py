from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from routegen.domain.models import (
    ParamRefinement,
    PayloadType,
    ResolvedProperty,
    ResolvedType,
    ResponseType,
    RouteEntry,
    RouteSignature,
    TypeDeclaration,
)
from routegen.errors import ExtractionError
from routegen.extractors.typescript.source import (
    depth_map,
    find_closing,
    mask,
    split_top_level,
    strip_leading_comments,
)
from routegen.render.renderer import Formatter, apply_formatters

log = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")

SKIP_VALIDATION = "@skip-validation"

_IDENT = r"[A-Za-z_$][\w$]*"

_DECL_START = re.compile(
    rf"^(?P<export>export\s+)?(?:declare\s+)?(?P<kind>type|interface|(?:const\s+)?enum)\s+(?P<name>{_IDENT})",
    re.M,
)
_IMPORT = re.compile(
    r"^(?P<stmt>(?:import|export)\s+(?P<clause>[^;=()]*?)\s+from\s+(?P<q>[\"'])(?P<path>[^\"']+)(?P=q)\s*;?)",
    re.M,
)
_DEFINE_ROUTE = re.compile(r"\bdefineRoute\b\s*")
_METHOD_CALL = re.compile(rf"\b(?P<method>{'|'.join(HTTP_METHODS)})\b\s*(?=[<(])")
_MEMBER = re.compile(
    rf"^(?:readonly\s+)?(?P<q>[\"']?)(?P<name>{_IDENT}|[\w$-]+)(?P=q)(?P<opt>\?)?\s*:\s*(?P<type>.+)$",
    re.S,
)

_SOURCE_SUFFIXES = (".ts", ".d.ts", ".tsx")


class TypeScriptExtractor:
    """
    Best-effort, regex + bracket matching reader for route modules of the form:

        type Payload = {...};
        export default defineRoute<[TRefine<number>, "a" | "b"]>(({ GET, POST }) => [
          GET<Query, Response>(async (ctx) => {...}),
          POST</** @skip-validation */ Payload>(async (ctx) => {...}),
        ]);

    It never executes or type-checks code. Blank modules and modules without
    `defineRoute` yield an empty signature; unreadable files raise ExtractionError.
    """

    def __init__(self, refine_type_name: str = "TRefine") -> None:
        self.refine_type_name = refine_type_name
        # resolved path -> ((mtime_ns, size), text)
        self._sources: dict[str, tuple[tuple[int, int], str]] = {}

    # ----------------------------
    # source cache
    # ----------------------------

    def source(self, file: str) -> str:
        """File text, re-read whenever the file changed on disk since the last read."""
        key = str(Path(file).resolve())
        try:
            st = Path(key).stat()
            stamp = (st.st_mtime_ns, st.st_size)
            cached = self._sources.get(key)
            if cached is not None and cached[0] == stamp:
                return cached[1]
            text = Path(key).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(file, f"cannot read source: {exc}") from exc
        self._sources[key] = (stamp, text)
        return text

    def refresh(self, file: str) -> None:
        self._sources.pop(str(Path(file).resolve()), None)

    # ----------------------------
    # signature
    # ----------------------------

    def resolve_route_signature(
        self,
        route: RouteEntry,
        *,
        optional_params: bool,
        relpath_resolver: Callable[[str], str],
    ) -> RouteSignature:
        text = self.source(route.file_fullpath)
        masked = mask(text)

        declarations = _type_declarations(text, masked)
        local = {d.name: d for d in declarations}

        refinements = None
        methods: list[str] = []
        payload_types: list[PayloadType] = []
        response_types: list[ResponseType] = []

        m = _DEFINE_ROUTE.search(masked)
        if m is None:
            log.debug("%s: no defineRoute call", route.file_fullpath)
        else:
            pos = m.end()
            if masked.startswith("<", pos):
                end = find_closing(masked, pos)
                if end is None:
                    raise ExtractionError(route.file_fullpath, "unbalanced defineRoute type arguments")
                refinements = self._refinements(text[pos + 1 : end])
                pos = end + 1
            body_start = masked.find("(", pos)
            body_end = find_closing(masked, body_start) if body_start != -1 else None
            if body_end is None:
                raise ExtractionError(route.file_fullpath, "unbalanced defineRoute call")
            methods, payload_types, response_types = self._methods(
                text, masked, body_start, body_end, local
            )

        used = " ".join(
            [d.text for d in declarations]
            + [t.text or "" for t in payload_types]
            + [t.text or "" for t in response_types]
            + [r.text for r in refinements or ()]
        )
        imports = [
            _rewrite_path(d, relpath_resolver)
            for d in _import_declarations(text, masked)
            if re.search(rf"\b{re.escape(d.alias or d.name)}\b", used)
        ]

        return RouteSignature(
            type_declarations=tuple(imports + declarations),
            params_refinements=refinements,
            methods=tuple(methods),
            payload_types=tuple(payload_types),
            response_types=tuple(response_types),
            referenced_files=tuple(self.referenced_files(route.file_fullpath)),
        )

    def _refinements(self, generic: str) -> Optional[tuple[ParamRefinement, ...]]:
        generic = generic.strip()
        if not (generic.startswith("[") and generic.endswith("]")):
            return None
        out = []
        for index, element in enumerate(split_top_level(generic[1:-1])):
            out.append(ParamRefinement(index=index, text=self._refined_base(element)))
        return tuple(out)

    def _refined_base(self, element: str) -> str:
        # TRefine<number, {...}> refines `number`
        prefix = f"{self.refine_type_name}<"
        if element.startswith(prefix) and element.endswith(">"):
            args = split_top_level(element[len(prefix) : -1])
            if args:
                return args[0]
        return element

    def _methods(self, text, masked, start, end, local):
        methods: list[str] = []
        payloads: list[PayloadType] = []
        responses: list[ResponseType] = []

        for m in _METHOD_CALL.finditer(masked, start, end):
            method = m.group("method")
            if method in methods:
                continue
            methods.append(method)

            pos = m.end()
            if not masked.startswith("<", pos):
                continue
            close = find_closing(masked, pos)
            if close is None:
                continue

            args = split_top_level(text[pos + 1 : close])
            payload = _type_arg(args, 0)
            response = _type_arg(args, 1)

            response_id = None
            if response is not None:
                skip, body = response
                response_id = f"{method}ResponseT"
                responses.append(
                    ResponseType(id=response_id, method=method, skip_validation=skip, text=body)
                )
            if payload is not None:
                skip, body = payload
                payloads.append(
                    PayloadType(
                        id=f"{method}PayloadT",
                        method=method,
                        skip_validation=skip,
                        is_optional=_all_optional(body, local),
                        response_type_id=response_id,
                        text=body,
                    )
                )

        return methods, payloads, responses

    # ----------------------------
    # referenced files
    # ----------------------------

    def referenced_files(self, file: str) -> list[str]:
        """Every existing local module reachable from `file` through relative imports."""
        root = str(Path(file).resolve())
        seen: set[str] = set()
        queue = [root]
        while queue:
            current = queue.pop()
            try:
                text = self.source(current)
            except ExtractionError:
                continue
            for spec in _import_specifiers(text):
                target = _resolve_module(current, spec)
                if target and target != root and target not in seen:
                    seen.add(target)
                    queue.append(target)
        return sorted(seen)

    # ----------------------------
    # literal types
    # ----------------------------

    def literal_types(
        self,
        text: str,
        *,
        overrides: Mapping[str, str],
        with_properties: Sequence[str],
        formatters: Iterable[Formatter] = (),
    ) -> list[ResolvedType]:
        """
        Shallow resolution of the `type X = ...` aliases in `text`: references to
        other local aliases are inlined, overridden names are replaced by their
        override (an override equal to the name protects it from inlining).
        """
        masked = mask(text)
        bodies = {
            d.name: _alias_body(d.text)
            for d in _type_declarations(text, masked)
            if d.kind == "type"
        }
        bodies = {k: v for k, v in bodies.items() if v is not None}

        resolved: list[ResolvedType] = []
        for name, body in bodies.items():
            if name in overrides:
                body = overrides[name]
            else:
                body = _inline(body, bodies, overrides)
            body = apply_formatters(body, f"{name}.ts", formatters)
            properties = _properties(body) if name in with_properties else ()
            resolved.append(ResolvedType(name=name, text=body, properties=properties))
        return resolved


def extractor(config: Optional[Mapping[str, Any]] = None) -> TypeScriptExtractor:
    return TypeScriptExtractor(**dict(config or {}))


# ----------------------------
# helpers
# ----------------------------


def _import_specifiers(text: str) -> list[str]:
    """Module specifiers of import/export-from statements not inside comments."""
    masked = mask(text)
    return [m.group("path") for m in _IMPORT.finditer(text) if masked[m.start()] != " "]


def _type_arg(args: list[str], index: int) -> Optional[tuple[bool, str]]:
    if index >= len(args):
        return None
    comments, body = strip_leading_comments(args[index])
    if not body or body == "never":
        return None
    return SKIP_VALIDATION in comments, body


def _alias_body(text: str) -> Optional[str]:
    masked = mask(text)
    m = re.search(rf"\btype\s+{_IDENT}\s*(<)?", masked)
    if m is None:
        return None
    pos = m.end()
    if m.group(1):
        close = find_closing(masked, pos - 1)
        if close is None:
            return None
        pos = close + 1
    eq = masked.find("=", pos)
    if eq == -1:
        return None
    return text[eq + 1 :].strip().rstrip(";").strip()


def _all_optional(body: str, local: Mapping[str, TypeDeclaration]) -> bool:
    if body in local and local[body].kind == "type":
        body = _alias_body(local[body].text) or ""
    props = _properties(body)
    return bool(props) and all(p.optional for p in props)


def _properties(body: str) -> tuple[ResolvedProperty, ...]:
    body = body.strip()
    masked = mask(body)
    if not body.startswith("{") or find_closing(masked, 0) != len(body) - 1:
        return ()
    out = []
    for member in split_top_level(body[1:-1], ",;\n"):
        _, member = strip_leading_comments(member)
        m = _MEMBER.match(member)
        if m is None:
            continue
        out.append(
            ResolvedProperty(
                name=m.group("name"),
                type=m.group("type").strip(),
                optional=bool(m.group("opt")),
            )
        )
    return tuple(out)


def _inline(body: str, bodies: Mapping[str, str], overrides: Mapping[str, str], depth: int = 8) -> str:
    names = [n for n in bodies if n not in overrides] + list(overrides)
    if not names:
        return body
    pattern = re.compile(rf"(?<![\w$.]){'|'.join(map(re.escape, names))}(?![\w$])")

    def repl(m: re.Match) -> str:
        name = m.group(0)
        if name in overrides:
            return overrides[name]
        return f"({bodies[name]})"

    for _ in range(depth):
        new = pattern.sub(repl, body)
        if new == body:
            break
        body = new
    return body


def _statement_end(text: str, masked: str, depths: list[int], start: int, kind: str) -> int:
    """End offset (exclusive) of the declaration starting at `start`."""
    if kind != "type":
        brace = masked.find("{", start)
        close = find_closing(masked, brace) if brace != -1 else None
        return len(text) if close is None else close + 1

    i = start
    n = len(masked)
    while i < n:
        c = masked[i]
        if depths[i] == 0 and c == ";":
            return i + 1
        if depths[i] == 0 and c == "\n":
            before = masked[start:i].rstrip()
            after = masked[i:].lstrip()
            if before and before[-1] not in "=|&,<(?:" and not after[:1] in ("|", "&"):
                return i
        i += 1
    return n


def _type_declarations(text: str, masked: str) -> list[TypeDeclaration]:
    depths = depth_map(masked)
    out = []
    for m in _DECL_START.finditer(masked):
        if depths[m.start()] != 0:
            continue
        kind = m.group("kind")
        kind = "enum" if kind.endswith("enum") else kind
        end = _statement_end(text, masked, depths, m.start(), kind)
        out.append(
            TypeDeclaration(
                text=text[m.start() : end].strip(),
                kind=kind,
                name=m.group("name"),
            )
        )
    return out


def _clause_names(clause: str) -> list[tuple[str, Optional[str]]]:
    """(name, alias) pairs bound by an import/export clause."""
    clause = re.sub(r"^\s*type\s+", "", clause).strip()
    m = re.fullmatch(rf"\*\s+as\s+({_IDENT})", clause)
    if m:
        return [(m.group(1), None)]

    names: list[tuple[str, Optional[str]]] = []
    brace = re.search(r"\{(.*)\}", clause, re.S)
    default = (clause[: brace.start()] if brace else clause).strip().rstrip(",").strip()
    if re.fullmatch(_IDENT, default):
        names.append((default, None))
    if brace:
        for item in brace.group(1).split(","):
            item = re.sub(r"^\s*type\s+", "", item).strip()
            m = re.fullmatch(rf"({_IDENT})(?:\s+as\s+({_IDENT}))?", item)
            if m:
                names.append((m.group(1), m.group(2)))
    return names


def _import_declarations(text: str, masked: str) -> list[TypeDeclaration]:
    out = []
    for m in _IMPORT.finditer(text):
        # inside a comment
        if masked[m.start()] == " ":
            continue
        stmt = m.group("stmt")
        kind = "import" if stmt.startswith("import") else "export"
        for name, alias in _clause_names(m.group("clause")):
            out.append(
                TypeDeclaration(
                    text=stmt,
                    kind=kind,
                    name=name,
                    alias=alias,
                    path=m.group("path"),
                )
            )
    return out


def _rewrite_path(decl: TypeDeclaration, relpath_resolver: Callable[[str], str]) -> TypeDeclaration:
    if not decl.path or not decl.path.startswith("."):
        return decl
    new_path = relpath_resolver(decl.path)
    return decl.model_copy(
        update={"path": new_path, "text": decl.text.replace(decl.path, new_path, 1)}
    )


def _resolve_module(importer: str, spec: str) -> Optional[str]:
    if not spec.startswith("."):
        return None
    base = (Path(importer).parent / spec).resolve()
    candidates = [base] + [Path(f"{base}{s}") for s in _SOURCE_SUFFIXES]
    candidates += [base / f"index{s}" for s in _SOURCE_SUFFIXES]
    for c in candidates:
        if c.is_file():
            return str(c)
    return None
