"""Tests for the text feature extractor."""

import time
from unittest.mock import patch

import pytest

from codebase_whisperer.extractor import (
    ExtractionResult,
    extract,
    extract_python_ast,
    get_extractor,
)

PYTHON_SERVICE = '''import os
from .models import User
from typing import Any, List

class UserService(Base):
    def __init__(self):
        self.repo = Repo()

    async def fetch(self, id):
        return await self.repo.get(id)

def helper():
    return os.path.join("a", "b")
'''


class TestScriptFunctions:
    def test_duplicate_declaration_kept_once(self):
        result = extract("function foo(){} function foo(){}", "app.js", "js")
        assert result.function_names == ["foo"]

    def test_duplicate_across_rules_first_wins(self):
        content = "function foo() {}\nconst foo = () => 1;\n"
        result = extract(content, "app.js", "js")
        assert result.function_names == ["foo"]
        assert result.functions[0].line == 1

    def test_declaration_forms(self):
        content = (
            "function plain(a) { return a; }\n"
            "const expr = function () {};\n"
            "const arrow = (a, b) => a + b;\n"
            "let single = x => x * 2;\n"
            "const handlers = {\n"
            "  onClick: function () {},\n"
            "  render(props) {\n"
            "    return props;\n"
            "  }\n"
            "};\n"
        )
        result = extract(content, "forms.js", "js")
        assert result.function_names == ["plain", "expr", "arrow", "single", "onClick", "render"]

    def test_async_detection(self):
        content = "const load = async (url) => fetch(url);\nfunction sync() {}\n"
        result = extract(content, "net.js", "js")
        flags = {f.name: f.is_async for f in result.functions}
        assert flags == {"load": True, "sync": False}

    def test_control_flow_is_not_a_function(self):
        content = "if (ready) {\n  go();\n}\nwhile (x) {\n  step();\n}\n"
        result = extract(content, "loop.js", "js")
        assert result.functions == ()


class TestScriptClasses:
    def test_classes_not_deduplicated(self):
        result = extract("class A {}\nclass A {}\n", "a.js", "js")
        assert result.class_names == ["A", "A"]
        assert [c.line for c in result.classes] == [1, 2]

    def test_class_methods(self):
        content = (
            "class Config {\n"
            "  static getInstance() {\n"
            "    return this.instance;\n"
            "  }\n"
            "  load(path) {\n"
            "    return read(path);\n"
            "  }\n"
            "}\n"
        )
        result = extract(content, "config.js", "js")
        assert result.classes[0].methods == ("getInstance", "load")


class TestScriptImportsExports:
    def test_import_forms_deduplicated(self):
        content = (
            "import React from 'react';\n"
            "import './styles.css';\n"
            "const fs = require(\"fs\");\n"
            "const again = require(\"fs\");\n"
            "const lazy = import('./lazy');\n"
        )
        result = extract(content, "index.js", "js")
        assert result.import_modules == ["react", "./styles.css", "fs", "./lazy"]
        assert result.imports[2].kind == "require"

    def test_export_forms(self):
        content = (
            "export default function App() {}\n"
            "export const x = 1;\n"
            "module.exports.helper = helper;\n"
            "exports.other = 1;\n"
        )
        result = extract(content, "app.js", "js")
        assert [e.name for e in result.exports] == ["App", "x", "helper", "other"]

    def test_anonymous_export_is_default(self):
        result = extract("module.exports = {};\n", "user.js", "js")
        assert [e.name for e in result.exports] == ["default"]

    def test_reexport_records_names_and_import(self):
        result = extract("export { a, b as c } from './mod';\n", "index.ts", "ts")
        assert [e.name for e in result.exports] == ["a", "c"]
        assert result.import_modules == ["./mod"]

    def test_multiline_import_clause(self):
        content = "import {\n  useState,\n  useEffect,\n} from 'react';\nimport type { Props } from './types';\n"
        result = extract(content, "hooks.ts", "ts")
        assert result.import_modules == ["react", "./types"]
        assert result.imports[1].line == 5

    def test_import_clause_stops_at_next_statement(self):
        content = "export const a = 1\nimport b from './b'\n"
        result = extract(content, "a.js", "js")
        assert result.imports[0].module == "./b"
        assert result.imports[0].line == 2

    def test_anonymous_async_default_export(self):
        result = extract("export default async () => {};\n", "a.ts", "ts")
        assert [e.name for e in result.exports] == ["default"]

        result = extract("export default async (req) => req;\n", "b.js", "js")
        assert [e.name for e in result.exports] == ["default"]

    def test_modifiers_before_declaration(self):
        content = (
            "export declare function foo(): void;\n"
            "export default async function load() {}\n"
            "export abstract class Shape {}\n"
        )
        result = extract(content, "decl.ts", "ts")
        assert [e.name for e in result.exports] == ["foo", "load", "Shape"]


class TestPythonExtraction:
    def test_regex_scan(self):
        result = extract(PYTHON_SERVICE, "service.py", "py")
        assert result.function_names == ["__init__", "fetch", "helper"]
        assert result.class_names == ["UserService"]
        assert result.classes[0].methods == ("__init__", "fetch")
        assert result.import_modules == ["os", ".models", "typing"]
        assert [f.is_async for f in result.functions] == [False, True, False]

    def test_class_bases_are_not_calls(self):
        result = extract("class A(Base):\n    pass\n", "a.py", "py")
        assert result.call_sites == 0

    def test_all_exports(self):
        result = extract("__all__ = ['one', \"two\"]\n", "pkg.py", "py")
        assert [e.name for e in result.exports] == ["one", "two"]

    def test_ast_matches_regex_names(self):
        result = extract_python_ast(PYTHON_SERVICE, "service.py")
        assert result.function_names == ["__init__", "fetch", "helper"]
        assert result.classes[0].methods == ("__init__", "fetch")
        assert result.import_modules == ["os", ".models", "typing"]

    def test_ast_falls_back_on_syntax_error(self):
        result = extract_python_ast("def broken(:\n    pass\n", "bad.py")
        assert result.function_names == ["broken"]

    def test_get_extractor(self):
        assert get_extractor("py", prefer_ast=True) is extract_python_ast
        assert get_extractor("js", prefer_ast=True) is extract
        assert get_extractor("py") is extract


class TestNeverRaises:
    @pytest.mark.parametrize("content", [
        "",
        "\x00\xff\xfe{{{{((((",
        "class A { function ( { { {",
        "import from from from '",
        "def (((:\n\tclass\n",
    ])
    @pytest.mark.parametrize("ext", ["js", "ts", "py"])
    def test_malformed_input(self, content, ext):
        result = extract(content, f"f.{ext}", ext)
        assert isinstance(result, ExtractionResult)
        assert isinstance(result.functions, tuple)
        assert isinstance(result.classes, tuple)
        assert isinstance(result.imports, tuple)
        assert isinstance(result.exports, tuple)

    def test_unknown_extension_is_empty(self):
        result = extract("def foo(): pass\nfunction bar() {}", "notes.rb", "rb")
        assert result.is_empty()
        assert result.call_sites == 0

    def test_extension_from_filename(self):
        result = extract("function foo() {}", "lib/foo.JS")
        assert result.function_names == ["foo"]

    def test_internal_error_degrades_to_empty(self):
        with patch("codebase_whisperer.extractor._scan_script", side_effect=RuntimeError("boom")):
            result = extract("function foo() {}", "a.js", "js")
        assert result == ExtractionResult()


class TestScanTime:
    """Long whitespace runs must not trigger regex backtracking blowups."""

    @pytest.mark.parametrize("content", [
        "import" + " " * 5000,
        "export" + " " * 5000,
        "import {\n" + "        \n" * 2000 + "};",
        "export default" + " " * 5000 + "async (",
        "function" + " " * 5000,
        "const f = (a):" + " " * 5000,
        "\n".join(" " * 40 for _ in range(2000)),
    ])
    def test_whitespace_runs_return_quickly(self, content):
        start = time.perf_counter()
        result = extract(content, "a.ts", "ts")
        elapsed = time.perf_counter() - start
        assert isinstance(result, ExtractionResult)
        assert elapsed < 1.0, f"{len(content)}-char input took {elapsed:.1f}s"
