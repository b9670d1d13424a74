from __future__ import annotations

import json
import logging
import zlib
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from routegen.domain.models import (
    ApiParams,
    PayloadType,
    ResponseType,
    RouteEntry,
    TypeDeclaration,
)
from routegen.paths import PathResolver, relative_to_root

log = logging.getLogger(__name__)

# Bump whenever the record layout or hashing input changes; old caches then miss.
CACHE_VERSION = "routegen-cache-1"

CACHE_FILE = "cache.json"


class CacheRecord(BaseModel):
    """Persisted analysis of one API route.

    `type_declarations` and `referenced_files` are optional only so that a
    partially written record still parses; validation treats it as absent.
    """

    model_config = ConfigDict(frozen=True)

    hash: int
    referenced_files: Optional[dict[str, int]] = None
    params: ApiParams
    methods: tuple[str, ...] = ()
    type_declarations: Optional[tuple[TypeDeclaration, ...]] = None
    numeric_params: tuple[str, ...] = ()
    payload_types: tuple[PayloadType, ...] = ()
    response_types: tuple[ResponseType, ...] = ()


def file_hash(path: str | Path, extra_context: Optional[Mapping[str, Any]] = None) -> int:
    """crc32 of the file text salted with the cache version and `extra_context`.

    Missing or empty files hash to 0, so a deleted dependency never matches
    a stored hash.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return 0
    if not content:
        return 0
    payload = json.dumps({**(extra_context or {}), CACHE_VERSION: content})
    return zlib.crc32(payload.encode("utf-8"))


class RouteCache:
    """Per-route cache record stored at lib/<source>/{api}/<import_path>/cache.json."""

    def __init__(
        self,
        route: RouteEntry,
        app_root: Path,
        source_folder: str,
        extra_context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.route = route
        self.app_root = app_root
        self.extra_context = dict(extra_context or {})
        self.cache_file = PathResolver(app_root, source_folder).resolve(
            "api_lib", route.import_path, CACHE_FILE
        )

    def get(self, validate: bool = False) -> Optional[CacheRecord]:
        if not self.cache_file.is_file():
            return None
        try:
            record = CacheRecord.model_validate_json(self.cache_file.read_bytes())
        except (OSError, ValueError, ValidationError):
            log.debug("unreadable cache for %s, ignoring", self.route.name)
            return None
        return self.validate(record) if validate else record

    def validate(self, record: Optional[CacheRecord]) -> Optional[CacheRecord]:
        if record is None or not record.hash:
            return None

        if record.type_declarations is None or record.referenced_files is None:
            # incomplete record
            return None

        if record.hash != file_hash(self.route.file_fullpath, self.extra_context):
            log.debug("cache miss for %s: route file changed", self.route.name)
            return None

        for rel, stored in record.referenced_files.items():
            if stored != file_hash(self.app_root / rel):
                log.debug("cache miss for %s: %s changed", self.route.name, rel)
                return None

        return record

    def persist(self, referenced_files: Iterable[str], **data: Any) -> CacheRecord:
        """Hash the route and its references, then overwrite the whole record."""
        record = CacheRecord(
            hash=file_hash(self.route.file_fullpath, self.extra_context),
            # stored repo-relative so caches stay valid across checkouts (CI, local, ...)
            referenced_files={
                relative_to_root(f, self.app_root): file_hash(f) for f in referenced_files
            },
            **data,
        )
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        self.cache_file.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        return record
