"""Tests for the codebase whisperer (Q&A, documentation, explanation)."""

from unittest.mock import MagicMock

import pytest

from codebase_whisperer.analyzer import analyze_files
from codebase_whisperer.model import ModelError, WatsonxClient
from codebase_whisperer.prompts import SYSTEM_PROMPT
from codebase_whisperer.source import FileInput
from codebase_whisperer.whisperer import (
    ERROR_CONFIDENCE,
    HEURISTIC_CONFIDENCE,
    MODEL_CONFIDENCE,
    CodebaseWhisperer,
)


@pytest.fixture
def analysis():
    return analyze_files([
        FileInput.from_text("src/auth/login.js", "function authenticate(user) {}\n"),
        FileInput.from_text("src/db.js", "const users = [];\n"),
        FileInput.from_text("README.md", "# Project\nUsers can log in.\n"),
    ], repository={"type": "upload", "name": "demo"})


@pytest.fixture
def mock_client():
    client = MagicMock(spec=WatsonxClient)
    client.is_configured.return_value = True
    client.generate.return_value = "Login is handled in `src/auth/login.js`."
    return client


@pytest.fixture
def failing_client(mock_client):
    mock_client.generate.side_effect = ModelError("watsonx.ai returned 503: busy")
    return mock_client


class TestFindRelatedFiles:
    def test_scoring_and_order(self, analysis):
        related = CodebaseWhisperer().find_related_files("how does login authenticate users", analysis)
        assert [r.path for r in related] == ["src/auth/login.js", "README.md", "src/db.js"]
        # name 10 + path 3 + function 6 + content 2
        assert related[0].relevance == 21
        assert related[0].functions == 1

    def test_extension_mention(self, analysis):
        related = CodebaseWhisperer().find_related_files("which md files exist", analysis)
        assert related[0].path == "README.md"

    def test_short_words_ignored(self, analysis):
        assert CodebaseWhisperer().find_related_files("a is to", analysis) == []

    def test_limit(self):
        many = analyze_files([FileInput.from_text(f"api{i}.js", "") for i in range(12)])
        related = CodebaseWhisperer().find_related_files("where is the api", many)
        assert len(related) == 8


class TestAnswerQuestion:
    def test_heuristic_without_client(self, analysis):
        answer = CodebaseWhisperer().answer_question("how does login authenticate users", analysis)
        assert answer.source == "heuristic"
        assert answer.error is False
        assert answer.confidence == HEURISTIC_CONFIDENCE
        assert "src/auth/login.js" in answer.answer
        assert answer.related_files

    def test_unconfigured_client_ignored(self):
        client = MagicMock(spec=WatsonxClient)
        client.is_configured.return_value = False
        assert CodebaseWhisperer(client).uses_model is False

    def test_model_answer(self, analysis, mock_client):
        answer = CodebaseWhisperer(mock_client).answer_question("where is login", analysis)
        assert answer.answer.startswith("Login is handled")
        assert answer.confidence == MODEL_CONFIDENCE
        assert answer.source == "model"

        prompt = mock_client.generate.call_args.args[0]
        assert prompt.startswith(SYSTEM_PROMPT)
        assert 'USER QUESTION: "where is login"' in prompt
        assert "PATH: src/auth/login.js" in prompt

    def test_model_failure_becomes_error_answer(self, analysis, failing_client):
        answer = CodebaseWhisperer(failing_client).answer_question("where is login", analysis)
        assert answer.error is True
        assert answer.confidence == ERROR_CONFIDENCE
        assert answer.answer.startswith("I encountered an error while analyzing your question:")
        assert "503" in answer.answer
        assert [r.path for r in answer.related_files][0] == "src/auth/login.js"

    def test_to_dict(self, analysis):
        data = CodebaseWhisperer().answer_question("login", analysis).to_dict()
        assert set(data) == {"question", "answer", "confidence", "relatedFiles", "timestamp", "error", "source"}


class TestDocumentation:
    def test_heuristic(self, analysis):
        docs = CodebaseWhisperer().generate_documentation(analysis)
        assert docs.documentation.startswith("# demo Documentation")
        assert "`src/auth/login.js`" in docs.documentation
        assert docs.confidence == HEURISTIC_CONFIDENCE
        assert docs.repository["name"] == "demo"

    def test_model(self, analysis, mock_client):
        mock_client.generate.return_value = "# Demo\n\nDocs."
        docs = CodebaseWhisperer(mock_client).generate_documentation(analysis)
        assert docs.documentation == "# Demo\n\nDocs."
        assert "DOCUMENTATION GENERATION REQUEST" in mock_client.generate.call_args.args[0]

    def test_failure(self, analysis, failing_client):
        docs = CodebaseWhisperer(failing_client).generate_documentation(analysis)
        assert docs.documentation.startswith("# Documentation Generation Failed")
        assert docs.confidence == ERROR_CONFIDENCE
        assert docs.error is True

    def test_empty_analysis(self):
        docs = CodebaseWhisperer().generate_documentation(analyze_files([]))
        assert "No files were analyzed." in docs.documentation


class TestExplainCode:
    def test_heuristic(self):
        code = "import fs from 'fs';\nfunction a() { b(); }\nfunction c() {}\n"
        result = CodebaseWhisperer().explain_code(code, file_path="x.js")
        assert result.summary == "Defines 2 functions and 0 classes"
        assert result.complexity == "Low"
        assert result.dependencies == ["fs"]
        assert result.source == "heuristic"

    def test_language_without_path(self):
        result = CodebaseWhisperer().explain_code("def run():\n    pass\n", language="Python")
        assert result.summary == "Defines 1 functions and 0 classes"

    def test_model(self, mock_client):
        mock_client.generate.return_value = "# Reads a config file\n\nDetails follow."
        result = CodebaseWhisperer(mock_client).explain_code("load()", file_path="cfg.js", language="javascript")
        assert result.summary == "Reads a config file"
        assert "Details follow." in result.purpose
        assert "```javascript" in mock_client.generate.call_args.args[0]

    def test_failure(self, failing_client):
        result = CodebaseWhisperer(failing_client).explain_code("x()")
        assert result.summary == "Code analysis unavailable"
        assert result.error is True


class TestReviewArchitecture:
    def test_heuristic(self, analysis):
        review = CodebaseWhisperer().review_architecture(analysis)
        assert review.documentation == analysis.summary_for_prompt()

    def test_model(self, analysis, mock_client):
        CodebaseWhisperer(mock_client).review_architecture(analysis)
        assert "senior architect" in mock_client.generate.call_args.args[0]
