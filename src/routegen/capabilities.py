from __future__ import annotations

import importlib
import importlib.util
import sys
import zlib
from pathlib import Path
from types import ModuleType
from typing import Any, Optional, Protocol

from routegen.config import ModuleRef
from routegen.errors import CapabilityError

# attribute looked up when a ref does not name one explicitly
GENERATOR_ATTR = "generator"
FORMATTER_ATTR = "formatter"
EXTRACTOR_ATTR = "extractor"


class CapabilityLoader(Protocol):
    def load(self, ref: ModuleRef, default_attr: str) -> Any: ...


class ImportCapabilityLoader:
    """
    Rebuilds a capability from its ModuleRef:
      pkg.mod           -> pkg.mod.<default_attr>(config)
      pkg.mod:make      -> pkg.mod.make(config)
      tools/gen.py:make -> file relative to base_dir, then make(config)
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir

    def load(self, ref: ModuleRef, default_attr: str) -> Any:
        target, _, attr = ref.module.partition(":")
        module = self._import(ref.module, target)

        factory = getattr(module, attr or default_attr, None)
        if not callable(factory):
            raise CapabilityError(ref.module, f"missing callable `{attr or default_attr}`")
        return factory(dict(ref.config))

    def _import(self, ref: str, target: str) -> ModuleType:
        if target.endswith(".py"):
            return self._import_file(ref, target)
        try:
            return importlib.import_module(target)
        except ImportError as exc:
            raise CapabilityError(ref, f"cannot import: {exc}") from exc

    def _import_file(self, ref: str, target: str) -> ModuleType:
        path = Path(target)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        if not path.is_file():
            raise CapabilityError(ref, f"no such file: {path}")

        digest = zlib.crc32(str(path.resolve()).encode("utf-8"))
        name = f"routegen_ext_{path.stem}_{digest}"
        if name in sys.modules:
            return sys.modules[name]

        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise CapabilityError(ref, f"failed to load module from {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            del sys.modules[name]
            raise CapabilityError(ref, f"error while importing: {exc}") from exc
        return module
