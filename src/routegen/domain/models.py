from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

RouteFolder = Literal["api", "pages"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ParamSpec(_Frozen):
    name: str
    const: str
    is_required: bool = False
    is_optional: bool = False
    is_rest: bool = False


class PathToken(_Frozen):
    orig: str
    base: str
    path: str
    ext: str = ""
    param: Optional[ParamSpec] = None


class RouteEntry(_Frozen):
    """Route identity as found on disk, before any analysis."""

    name: str
    folder: RouteFolder
    # relative to the route folder
    file: str
    file_fullpath: str
    path_tokens: tuple[PathToken, ...]
    import_path: str
    import_name: str

    @property
    def params_schema(self) -> tuple[ParamSpec, ...]:
        return tuple(t.param for t in self.path_tokens if t.param is not None)


# ----------------------------
# Type descriptors
# ----------------------------


class ResolvedProperty(_Frozen):
    name: str
    type: str
    optional: bool = False


class ResolvedType(_Frozen):
    name: str
    text: str
    properties: tuple[ResolvedProperty, ...] = ()


class TypeDeclaration(_Frozen):
    text: str
    kind: Literal["import", "export", "type", "interface", "enum"]
    name: str
    alias: Optional[str] = None
    # module specifier, import/export declarations only
    path: Optional[str] = None


class PayloadType(_Frozen):
    id: str
    method: str
    skip_validation: bool = False
    is_optional: bool = False
    # links a payload to the response of the same handler
    response_type_id: Optional[str] = None
    resolved_type: Optional[ResolvedType] = None
    # raw source text; only needed while rendering types.ts, never cached
    text: Optional[str] = None


class ResponseType(_Frozen):
    id: str
    method: str
    skip_validation: bool = False
    resolved_type: Optional[ResolvedType] = None
    text: Optional[str] = None


class ParamRefinement(_Frozen):
    index: int
    text: str


class RouteSignature(_Frozen):
    """What a signature extractor reports about one API route module."""

    type_declarations: tuple[TypeDeclaration, ...] = ()
    params_refinements: Optional[tuple[ParamRefinement, ...]] = None
    methods: tuple[str, ...] = ()
    payload_types: tuple[PayloadType, ...] = ()
    response_types: tuple[ResponseType, ...] = ()
    # absolute paths
    referenced_files: tuple[str, ...] = ()


# ----------------------------
# Resolved routes
# ----------------------------


class ApiParams(_Frozen):
    id: str
    param_specs: tuple[ParamSpec, ...] = ()
    resolved_type: Optional[ResolvedType] = None


class PageParams(_Frozen):
    param_specs: tuple[ParamSpec, ...] = ()


class ApiRoute(RouteEntry):
    params: ApiParams
    numeric_params: tuple[str, ...] = ()
    optional_params: bool = True
    methods: tuple[str, ...] = ()
    type_declarations: tuple[TypeDeclaration, ...] = ()
    payload_types: tuple[PayloadType, ...] = ()
    response_types: tuple[ResponseType, ...] = ()
    # absolute paths
    referenced_files: tuple[str, ...] = ()


class PageRoute(RouteEntry):
    params: PageParams


class ApiEntry(_Frozen):
    kind: Literal["api"] = "api"
    route: ApiRoute


class PageEntry(_Frozen):
    kind: Literal["page"] = "page"
    route: PageRoute


RouteResolverEntry = Annotated[Union[ApiEntry, PageEntry], Field(discriminator="kind")]


@dataclass(frozen=True)
class RouteResolver:
    name: str
    # handler(updated_file=None) -> RouteResolverEntry; safe to call repeatedly
    handler: Callable[..., Union[ApiEntry, PageEntry]]


# ----------------------------
# Watch events
# ----------------------------


class EventKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class WatcherEvent(_Frozen):
    kind: EventKind
    file: str


RouteSnapshot = tuple[Union[ApiEntry, PageEntry], ...]


def snapshot_routes(entries) -> RouteSnapshot:
    """Deep copies of `entries`, safe to hand to code that may mutate them."""
    return tuple(e.model_copy(deep=True) for e in entries)
