import json
from pathlib import Path

from conftest import write
from typer.testing import CliRunner

from routegen.cli import app

runner = CliRunner()

USER_ROUTE = """
import type { User } from "../../../types/user";

type Patch = { name?: string };

export default defineRoute<[TRefine<number>]>(({ GET, PATCH }) => [
  GET<never, User>(async (ctx) => {}),
  PATCH<Patch, User>(async (ctx) => {}),
]);
"""


def _project(root: Path) -> None:
    write(root / "src/api/users/[id]/index.ts", USER_ROUTE)
    write(root / "src/api/users/account/index.ts", USER_ROUTE.replace("<[TRefine<number>]>", ""))
    write(root / "src/types/user.ts", "export type User = { id: number; name: string };\n")
    write(root / "src/api/blank/index.ts", "")
    write(root / "src/pages/about/index.tsx", "")


def test_build_generates_everything(app_root: Path):
    _project(app_root)

    result = runner.invoke(app, ["build", str(app_root)])
    assert result.exit_code == 0, result.output

    lib = app_root / "lib" / "src"
    assert (lib / "{api}.ts").is_file()
    assert (lib / "{fetch}.ts").is_file()
    assert (lib / "{fetch}" / "_runtime.ts").is_file()
    assert (lib / "{api}" / "users" / "[id]" / "cache.json").is_file()
    assert (lib / "{fetch}" / "users" / "[id]" / "index.ts").is_file()

    types = (lib / "{api}" / "users" / "[id]" / "types.ts").read_text()
    assert '"id": number;' in types
    assert 'from "src/types/user"' in types
    assert "export type PATCHPayloadT = Patch;" in types

    # blank route sources got a placeholder, hand written ones are untouched
    assert "defineRoute" in (app_root / "src/api/blank/index.ts").read_text()
    assert "Automatically generated page" in (app_root / "src/pages/about/index.tsx").read_text()
    assert (app_root / "src/api/users/[id]/index.ts").read_text().lstrip().startswith("import type")


def test_api_index_is_sorted_by_specificity(app_root: Path):
    _project(app_root)
    assert runner.invoke(app, ["build", str(app_root)]).exit_code == 0

    index = (app_root / "lib/src/{api}.ts").read_text()
    assert index.index('"users/account"') < index.index('"users/[id]"')
    assert '"users/:id"' in index


def test_routes_list_json(app_root: Path):
    _project(app_root)

    result = runner.invoke(app, ["routes", "list", str(app_root), "--format", "json", "--kind", "api"])
    assert result.exit_code == 0, result.output

    rows = json.loads(result.stdout)
    by_name = {r["name"]: r for r in rows}
    assert set(by_name) == {"blank", "users/[id]", "users/account"}
    assert by_name["users/[id]"]["methods"] == ["GET", "PATCH"]
    assert by_name["users/[id]"]["path"] == "/users/:id"
    assert by_name["users/[id]"]["file"] == "src/api/users/[id]/index.ts"


def test_routes_list_table(app_root: Path):
    _project(app_root)

    result = runner.invoke(app, ["routes", "list", str(app_root)])
    assert result.exit_code == 0, result.output
    assert "Routes:" in result.stdout
    assert "about" in result.stdout


def test_source_folder_option(app_root: Path):
    write(app_root / "web/api/ping/index.ts", "export default defineRoute(({ GET }) => []);\n")

    result = runner.invoke(
        app, ["routes", "list", str(app_root), "--source-folder", "web", "--format", "json"]
    )
    assert result.exit_code == 0, result.output
    assert [r["name"] for r in json.loads(result.stdout)] == ["ping"]


def test_bad_arguments(app_root: Path, tmp_path: Path):
    assert runner.invoke(app, ["build", str(tmp_path / "missing")]).exit_code != 0
    assert runner.invoke(app, ["routes", "list", str(app_root), "--format", "xml"]).exit_code != 0


def test_build_fails_on_bad_config(app_root: Path):
    write(app_root / "routegen.toml", 'generators = ["routegen_no_such_module"]\n')
    result = runner.invoke(app, ["build", str(app_root)])
    assert result.exit_code == 1
