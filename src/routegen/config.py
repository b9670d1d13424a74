from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from routegen.errors import ConfigError

Framework = Literal["react", "solid", "vue", "svelte"]


class ModuleRef(BaseModel):
    """Serializable pointer to a capability: `pkg.mod`, `pkg.mod:attr` or `path/to/file.py`.

    Generators and formatters are closures and cannot cross a process
    boundary; a ModuleRef can, and is turned back into a callable on the
    other side (see routegen.capabilities).
    """

    module: str
    config: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"module": data}
        return data


class WatcherConfig(BaseModel):
    # milliseconds a file must be stable before the change is handled
    delay: int = 1000
    force_polling: bool = False


class ProjectConfig(BaseModel):
    app_root: Path
    source_folder: str = "src"
    framework: Optional[Framework] = None
    base_url: str = "/"
    api_url: str = "/api"
    out_dir: str = "dist"
    refine_type_name: str = "TRefine"
    generators: list[ModuleRef] = Field(default_factory=list)
    formatters: list[ModuleRef] = Field(default_factory=list)
    extractor: Optional[ModuleRef] = None
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)

    @property
    def source_root(self) -> Path:
        return self.app_root / self.source_folder


def _read_table(app_root: Path) -> dict[str, Any]:
    pyproject = app_root / "pyproject.toml"
    if pyproject.is_file():
        data = _load_toml(pyproject)
        table = data.get("tool", {}).get("routegen")
        if table is not None:
            return table

    standalone = app_root / "routegen.toml"
    if standalone.is_file():
        return _load_toml(standalone)

    return {}


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


def load_config(app_root: Path, **overrides: Any) -> ProjectConfig:
    """
    Load [tool.routegen] from pyproject.toml, falling back to routegen.toml,
    then to defaults. Keyword overrides (from the CLI) win; None values are ignored.
    """
    app_root = app_root.expanduser().resolve()
    if not app_root.is_dir():
        raise ConfigError(f"App root is not a directory: {app_root}")

    data = {**_read_table(app_root), "app_root": app_root}
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid routegen config in {app_root}:\n{exc}") from exc
