"""Tests for the toolweave command line."""

import json

import pytest
from click.testing import CliRunner

from conftest import posix_only, write_json, write_script
from toolweave.cli.main import cli
from toolweave.tools.schema import ToolManifest
from toolweave.tools.store import ToolStore
from toolweave.validation.config import Config


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project root with quiet logging, no site-packages scan and no global config."""
    monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", tmp_path / "home")
    root = tmp_path / "project"
    (root / ".toolweave").mkdir(parents=True)
    (root / ".toolweave" / "config.yaml").write_text(
        "bridge:\n  include_site_packages: false\nlogging:\n  level: ERROR\n"
    )
    return root


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, project, *args):
    return runner.invoke(cli, ["--root", str(project), *args])


class TestList:
    def test_empty(self, runner, project):
        result = invoke(runner, project, "list")
        assert result.exit_code == 0
        assert "No external tools registered" in result.output

    def test_json(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "list", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["id"] for t in data["tools"]] == ["github"]

    def test_table(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "list")
        assert result.exit_code == 0
        assert "github" in result.output


class TestAdd:
    def test_add_local_file(self, runner, project, tmp_path, mcp_manifest):
        path = write_json(tmp_path / "github.tool.json", mcp_manifest)
        result = invoke(runner, project, "add", str(path))

        assert result.exit_code == 0, result.output
        assert "Tool registered" in result.output
        assert ToolStore.for_project(project).has("github")

    def test_add_json_output(self, runner, project, tmp_path, mcp_manifest):
        path = write_json(tmp_path / "github.tool.json", mcp_manifest)
        result = invoke(runner, project, "add", str(path), "--json")

        assert result.exit_code == 0
        assert json.loads(result.output)["added"]["id"] == "github"

    def test_add_invalid_manifest(self, runner, project, tmp_path, mcp_manifest):
        del mcp_manifest["endpoint"]
        path = write_json(tmp_path / "github.tool.json", mcp_manifest)
        result = invoke(runner, project, "add", str(path), "--json")

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert "HTTP/MCP adapter requires endpoint (string)" in data["errors"]
        assert not ToolStore.for_project(project).has("github")

    def test_add_missing_file(self, runner, project, tmp_path):
        result = invoke(runner, project, "add", str(tmp_path / "absent.tool.json"))
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_add_invalid_json(self, runner, project, tmp_path):
        path = tmp_path / "bad.tool.json"
        path.write_text("{nope")
        result = invoke(runner, project, "add", str(path), "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == "Invalid JSON in manifest file"


class TestRemoveAndInfo:
    def test_remove(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "remove", "github", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"removed": "github"}
        assert not ToolStore.for_project(project).has("github")

    def test_remove_unknown(self, runner, project):
        result = invoke(runner, project, "remove", "ghost")
        assert result.exit_code == 1
        assert "Tool not found" in result.output

    def test_info(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "info", "github")

        assert result.exit_code == 0
        assert "github__search_repos" in result.output
        assert "https://mcp.example.com/rpc" in result.output

    def test_info_json(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "info", "github", "--json")
        assert json.loads(result.output)["endpoint"] == "https://mcp.example.com/rpc"


class TestTestCommand:
    def test_unknown_tool(self, runner, project):
        result = invoke(runner, project, "test", "ghost", "run", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == 'Tool not found: "ghost"'

    def test_invalid_args(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "test", "github", "search_repos", "--args", "[1]", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == "--args must be a JSON object"

    def test_unknown_action(self, runner, project, mcp_manifest):
        ToolStore.for_project(project).add(ToolManifest.model_validate(mcp_manifest))
        result = invoke(runner, project, "test", "github", "nope", "--json")

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["toolId"] == "unknown"
        assert data["error"] == 'Action "github__nope" not found in any registered tool'

    @posix_only
    def test_runs_script_action(self, runner, project, script_manifest):
        write_script(project / "tools" / "run.sh", 'printf \'{"hello": "%s"}\' "$TOOLWEAVE_TOOL_ACTION"\n')
        ToolStore.for_project(project).add(ToolManifest.model_validate(script_manifest))

        result = invoke(runner, project, "test", "local", "greet", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["action"] == "local__greet"
        assert data["data"] == {"hello": "greet"}


    @posix_only
    def test_action_name_containing_separator(self, runner, project, script_manifest):
        write_script(project / "tools" / "run.sh", 'printf \'{"hello": "%s"}\' "$TOOLWEAVE_TOOL_ACTION"\n')
        script_manifest["tools"] = [{"name": "say__hi", "description": "Say hi"}]
        ToolStore.for_project(project).add(ToolManifest.model_validate(script_manifest))

        result = invoke(runner, project, "test", "local", "say__hi", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["action"] == "local__say__hi"
        assert data["data"] == {"hello": "say__hi"}

    @posix_only
    def test_accepts_namespaced_action(self, runner, project, script_manifest):
        write_script(project / "tools" / "run.sh", 'printf \'{"hello": "%s"}\' "$TOOLWEAVE_TOOL_ACTION"\n')
        ToolStore.for_project(project).add(ToolManifest.model_validate(script_manifest))

        result = invoke(runner, project, "test", "local", "local__greet", "--json")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["action"] == "local__greet"


class TestScan:
    def test_scan_reports_manifests_and_errors(self, runner, project, mcp_manifest):
        tools_dir = project / ".toolweave" / "tools"
        write_json(tools_dir / "github.tool.json", mcp_manifest)
        write_json(tools_dir / "broken.tool.json", {"id": "broken"})

        result = invoke(runner, project, "scan", "--json")

        data = json.loads(result.output)
        assert [m["id"] for m in data["manifests"]] == ["github"]
        assert data["errors"][0]["source"].endswith("broken.tool.json")
        assert not ToolStore.for_project(project).has("github")

    def test_scan_register(self, runner, project, mcp_manifest):
        write_json(project / ".toolweave" / "tools" / "github.tool.json", mcp_manifest)

        result = invoke(runner, project, "scan", "--register")

        assert result.exit_code == 0
        assert "Discovered 1 manifest(s)" in result.output
        assert ToolStore.for_project(project).has("github")


class TestGroup:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_bad_config(self, runner, project):
        (project / ".toolweave" / "config.yaml").write_text("logging:\n  level: chatty\n")
        result = invoke(runner, project, "list")
        assert result.exit_code == 1
        assert "Configuration error" in result.output
