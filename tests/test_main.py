"""Tests for the CLI."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from codebase_whisperer import __version__
from codebase_whisperer.main import cli


@pytest.fixture(autouse=True)
def heuristic_env(monkeypatch):
    """Keep every CLI test on the heuristic path."""
    monkeypatch.delenv("WATSONX_API_KEY", raising=False)
    monkeypatch.delenv("WATSONX_PROJECT_ID", raising=False)
    monkeypatch.setenv("DEMO_MODE", "true")


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert f"codebase-whisperer v{__version__}" in result.output

    def test_analyze_json(self, runner, web_repo):
        result = runner.invoke(cli, ["analyze", str(web_repo), "--json-only"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["repository"]["type"] == "local"
        assert data["aiInsights"]["architecturalStyle"] == "Component-Based SPA"
        assert "content" not in data["files"][0]

    def test_analyze_json_with_content(self, runner, web_repo):
        result = runner.invoke(cli, ["analyze", str(web_repo), "--json-only", "--include-content"])
        data = json.loads(result.output)
        assert "content" in data["files"][0]

    def test_analyze_summary(self, runner, web_repo):
        result = runner.invoke(cli, ["analyze", str(web_repo)])
        assert result.exit_code == 0, result.output
        assert "Repository Analysis" in result.output
        assert "Component-Based SPA" in result.output
        assert "Components" in result.output

    def test_analyze_review_heuristic(self, runner, web_repo):
        result = runner.invoke(cli, ["analyze", str(web_repo), "--review"])
        assert result.exit_code == 0, result.output
        assert "Architecture Review" in result.output

    def test_analyze_missing_target(self, runner, tmp_path):
        result = runner.invoke(cli, ["analyze", str(tmp_path / "missing")])
        assert result.exit_code != 0
        assert "Not a directory" in result.output

    def test_ask_json(self, runner, web_repo):
        result = runner.invoke(cli, ["ask", str(web_repo), "what does the app render", "--json-only"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["source"] == "heuristic"
        assert data["relatedFiles"][0]["path"] == "src/app.js"

    def test_ask_panel(self, runner, web_repo):
        result = runner.invoke(cli, ["ask", str(web_repo), "where is the user model"])
        assert result.exit_code == 0, result.output
        assert "Related Files" in result.output

    def test_docs_to_file(self, runner, web_repo, tmp_path):
        out = tmp_path / "out" / "DOCS.md"
        result = runner.invoke(cli, ["docs", str(web_repo), "--output", str(out)])
        assert result.exit_code == 0, result.output
        assert out.read_text().startswith(f"# {web_repo.name} Documentation")

    def test_explain(self, runner, tmp_path):
        code = tmp_path / "util.py"
        code.write_text("import os\n\ndef join(a, b):\n    return os.path.join(a, b)\n")
        result = runner.invoke(cli, ["explain", str(code), "--json-only"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"] == "Defines 1 functions and 0 classes"
        assert data["dependencies"] == ["os"]
        assert data["filePath"] == "util.py"

    def test_explain_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["explain", str(tmp_path / "none.js")])
        assert result.exit_code != 0

    def test_serve(self, runner, monkeypatch):
        monkeypatch.setenv("PORT", "4100")
        with patch("codebase_whisperer.main.start_server") as mock_start:
            result = runner.invoke(cli, ["serve"])
        assert result.exit_code == 0, result.output
        whisperer = mock_start.call_args.args[0]
        assert whisperer.uses_model is False
        assert mock_start.call_args.kwargs["port"] == 4100

    def test_serve_port_option(self, runner):
        with patch("codebase_whisperer.main.start_server") as mock_start:
            runner.invoke(cli, ["serve", "--port", "8080"])
        assert mock_start.call_args.kwargs["port"] == 8080

    def test_bad_config(self, runner, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-number")
        result = runner.invoke(cli, ["serve"])
        assert result.exit_code != 0
        assert "PORT must be an integer" in result.output

    def test_verbose_flag(self, runner):
        result = runner.invoke(cli, ["-v", "version"])
        assert result.exit_code == 0

    def test_analyze_ast_flag(self, runner, tmp_path):
        # The regex scan also sees `def` lines inside string literals
        (tmp_path / "doc.py").write_text('TEMPLATE = """\ndef fake():\n"""\n\ndef real():\n    pass\n')

        result = runner.invoke(cli, ["analyze", str(tmp_path), "--json-only"])
        names = [f["name"] for f in json.loads(result.output)["files"][0]["analysis"]["functions"]]
        assert names == ["fake", "real"]

        result = runner.invoke(cli, ["analyze", str(tmp_path), "--json-only", "--ast"])
        assert result.exit_code == 0, result.output
        names = [f["name"] for f in json.loads(result.output)["files"][0]["analysis"]["functions"]]
        assert names == ["real"]
