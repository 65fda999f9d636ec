"""Tests for the aggregate insight summarizer."""

import json

import pytest

from codebase_whisperer.insights import (
    INSIGHT_CONFIDENCE,
    MAX_COMPONENTS,
    MAX_RECOMMENDATIONS,
    _recommendations,
    choose_style,
    detect_frameworks,
    find_manifest,
    group_components,
    parse_manifest,
    responsibility_for,
    summarize,
)
from codebase_whisperer.metrics import MetricsSummary, aggregate
from codebase_whisperer.patterns import detect_patterns


class TestParseManifest:
    def test_package_json(self):
        content = json.dumps({
            "dependencies": {"react": "^18.0.0", "axios": "^1.0.0"},
            "devDependencies": {"vite": "^5.0.0", "react": "^18.0.0"},
        })
        assert parse_manifest("package.json", content) == ["react", "axios", "vite"]

    def test_invalid_json_recovers(self):
        assert parse_manifest("package.json", "{not json") == []
        assert parse_manifest("package.json", "[1, 2]") == []

    def test_requirements(self):
        content = "Flask==2.0.1\n# comment\n-r dev.txt\n\npytest>=7  # tests\nrequests[socks]\n"
        assert parse_manifest("requirements.txt", content) == ["flask", "pytest", "requests"]

    def test_pyproject_pep621(self):
        content = (
            '[project]\nname = "x"\ndependencies = [\n  "fastapi>=0.100",\n  "pydantic>=2.0",\n]\n'
            '\n[project.optional-dependencies]\ndev = ["pytest>=8.0"]\n'
        )
        assert parse_manifest("pyproject.toml", content) == ["fastapi", "pydantic", "pytest"]

    def test_pyproject_poetry(self):
        content = '[tool.poetry.dependencies]\npython = "^3.10"\ndjango = "^4.2"\n'
        assert parse_manifest("pyproject.toml", content) == ["django"]

    def test_nested_path_and_unknown_file(self):
        assert parse_manifest("web/package.json", '{"dependencies": {"vue": "3"}}') == ["vue"]
        assert parse_manifest("Cargo.toml", "[dependencies]\nserde = '1'\n") == []


class TestFrameworks:
    def test_mapping_and_order(self):
        assert detect_frameworks(["react", "express", "left-pad", "@types/react"]) == ["React", "Express.js"]

    def test_case_insensitive(self):
        assert detect_frameworks(["Django"]) == ["Django"]


class TestChooseStyle:
    def test_client_framework_wins(self):
        assert choose_style(["React", "Express.js"], set()) == "Component-Based SPA"
        assert choose_style(["Express.js", "React"], set()) == "Component-Based SPA"

    @pytest.mark.parametrize("frameworks,file_types,expected", [
        (["Express.js"], {"js"}, "REST API / Backend Service"),
        (["Next.js"], {"js"}, "Full-Stack Framework"),
        ([], {"html", "css", "js"}, "Vanilla Web Application"),
        ([], {"html", "js"}, "Modular Architecture"),
        (["TypeScript"], {"ts"}, "Modular Architecture"),
    ])
    def test_priority(self, frameworks, file_types, expected):
        assert choose_style(frameworks, file_types) == expected


class TestComponents:
    def test_responsibility_priority(self):
        assert responsibility_for("components") == "UI Components"
        assert responsibility_for("component_services") == "UI Components"
        assert responsibility_for("routes") == "API Endpoints"
        assert responsibility_for("helpers") == "Utility Functions"
        assert responsibility_for("tests") == "Testing"
        assert responsibility_for("lib") == "Core functionality"

    def test_grouping(self, source):
        files = [
            source("README.md"),
            source("src/components/Button.jsx", "export function Button() {}\n"),
            source("src/services/api.js", "function get() {}\nclass Api {}\n"),
            source("tests/test_a.py", "def test_a():\n    pass\n"),
        ]
        components = group_components(files)
        assert [c.name for c in components] == ["Main Application", "src", "tests"]
        src = components[1]
        assert src.files == ["Button.jsx", "api.js"]
        assert src.functions == 2
        assert src.classes == 1
        assert components[2].responsibility == "Testing"


class TestFindManifest:
    def test_priority_and_depth(self, source):
        files = [
            source("requirements.txt", "flask\n"),
            source("web/package.json", "{}"),
            source("package.json", "{}"),
        ]
        assert find_manifest(files).relative_path == "package.json"

    def test_none(self, source):
        assert find_manifest([source("a.js")]) is None


class TestRecommendations:
    def test_truncated_in_trigger_order(self):
        metrics = MetricsSummary(total_files=60, total_functions=150)
        recs = _recommendations(metrics, [], [], {"js"}, component_count=6)
        assert len(recs) == MAX_RECOMMENDATIONS
        assert recs[0].startswith("Consider migrating to TypeScript")
        assert recs[1].startswith("Add comprehensive testing")
        assert not any("build tool" in r for r in recs)

    def test_frameworks_suppress_triggers(self):
        metrics = MetricsSummary(total_files=60, total_functions=150)
        recs = _recommendations(metrics, ["TypeScript", "Testing Framework", "Vite"], [], set(), 1)
        assert recs == []


class TestSummarize:
    def test_web_project(self, source):
        files = [
            source("package.json", '{"dependencies": {"react": "1", "express": "4"}}'),
            source("models/user.js"),
            source("views/home.js"),
            source("controllers/home.js"),
            source("src/components/App.jsx", "export default function App() {}\n"),
        ]
        patterns = detect_patterns(files)
        insight = summarize(files, patterns, ["react", "express"], aggregate(files))

        assert insight.architectural_style == "Component-Based SPA"
        assert insight.frameworks == ["React", "Express.js"]
        assert "MVC Pattern" in insight.patterns
        assert "Props and state flow through component hierarchy" in insight.data_flow
        assert insight.confidence == INSIGHT_CONFIDENCE
        assert insight.summary == "Component-Based SPA with 5 files, 1 functions, and 2 frameworks/tools detected."

    def test_limits(self, source):
        files = [source(f"dir{i}/file.js", "function f() {}\n") for i in range(8)]
        insight = summarize(files, detect_patterns(files), [], aggregate(files))
        assert len(insight.components) == MAX_COMPONENTS
        assert len(insight.patterns) <= 5
        assert len(insight.recommendations) <= MAX_RECOMMENDATIONS

    def test_empty_input(self):
        insight = summarize([], {}, None, None)
        assert insight.architectural_style == "Modular Architecture"
        assert insight.components == []
        assert insight.data_flow == ["Standard file-based code organization"]
        assert insight.to_dict()["confidence"] == INSIGHT_CONFIDENCE
