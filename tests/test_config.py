from pathlib import Path

import pytest
from conftest import write

from routegen.capabilities import GENERATOR_ATTR, ImportCapabilityLoader
from routegen.config import ModuleRef, load_config
from routegen.errors import CapabilityError, ConfigError
from routegen.options import resolve_options


def test_defaults(app_root: Path):
    config = load_config(app_root)

    assert config.app_root == app_root
    assert config.source_folder == "src"
    assert config.api_url == "/api"
    assert config.watcher.delay == 1000
    assert config.generators == []
    assert config.source_root == app_root / "src"


def test_pyproject_table(app_root: Path):
    write(
        app_root / "pyproject.toml",
        """
        [tool.routegen]
        source_folder = "app"
        framework = "vue"
        generators = ["tools/gen.py", { module = "pkg.mod:make", config = { x = 1 } }]

        [tool.routegen.watcher]
        delay = 250
        """,
    )
    config = load_config(app_root)

    assert config.source_folder == "app"
    assert config.framework == "vue"
    assert config.watcher.delay == 250
    assert config.generators == [
        ModuleRef(module="tools/gen.py"),
        ModuleRef(module="pkg.mod:make", config={"x": 1}),
    ]


def test_standalone_file_and_overrides(app_root: Path):
    write(app_root / "routegen.toml", 'source_folder = "web"\napi_url = "/v1"\n')

    config = load_config(app_root, source_folder="client", api_url=None)
    assert config.source_folder == "client"
    assert config.api_url == "/v1"


def test_pyproject_without_table_falls_back(app_root: Path):
    write(app_root / "pyproject.toml", '[project]\nname = "x"\n')
    write(app_root / "routegen.toml", 'source_folder = "web"\n')

    assert load_config(app_root).source_folder == "web"


def test_invalid_config(app_root: Path):
    write(app_root / "routegen.toml", 'framework = "angular"\n')
    with pytest.raises(ConfigError):
        load_config(app_root)

    write(app_root / "routegen.toml", "not = [toml\n")
    with pytest.raises(ConfigError):
        load_config(app_root)


def test_missing_app_root(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope")


GEN = """
from routegen.generators.base import GeneratorConstructor


def generator(config):
    return GeneratorConstructor(
        name="custom:" + config.get("label", "none"),
        module_import=__name__,
        module_config=config,
        factory=lambda options: (lambda entries, event=None: None),
        kind=config.get("kind"),
    )


def make(config):
    return generator({**config, "label": "made"})


def formatter(config):
    return lambda text, path: text
"""


def test_file_capabilities(app_root: Path):
    write(app_root / "tools" / "gen.py", GEN)
    loader = ImportCapabilityLoader(base_dir=app_root)

    default = loader.load(ModuleRef(module="tools/gen.py", config={"label": "x"}), GENERATOR_ATTR)
    assert default.name == "custom:x"

    named = loader.load(ModuleRef(module="tools/gen.py:make"), GENERATOR_ATTR)
    assert named.name == "custom:made"


def test_capability_errors(app_root: Path):
    write(app_root / "tools" / "gen.py", GEN)
    loader = ImportCapabilityLoader(base_dir=app_root)

    with pytest.raises(CapabilityError):
        loader.load(ModuleRef(module="tools/gen.py:nothing"), GENERATOR_ATTR)
    with pytest.raises(CapabilityError):
        loader.load(ModuleRef(module="tools/missing.py"), GENERATOR_ATTR)
    with pytest.raises(CapabilityError):
        loader.load(ModuleRef(module="routegen_no_such_module"), GENERATOR_ATTR)


def test_resolve_options_orders_builtins_and_user_generators(app_root: Path):
    write(app_root / "tools" / "gen.py", GEN)
    write(
        app_root / "routegen.toml",
        """
        generators = [
          { module = "tools/gen.py", config = { label = "docs" } },
          { module = "tools/gen.py", config = { label = "my-api", kind = "api" } },
        ]
        formatters = ["tools/gen.py"]
        """,
    )
    options = resolve_options(load_config(app_root), "build")

    assert [g.name for g in options.generators] == [
        "Stub Generator",
        "custom:my-api",
        "Fetch Generator",
        "custom:docs",
    ]
    assert len(options.formatters) == 1
    assert options.extractor.refine_type_name == "TRefine"
