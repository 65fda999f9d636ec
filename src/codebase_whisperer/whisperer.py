"""Codebase Q&A and documentation - combines the analysis with the model.

Takes an AnalysisResult, feeds it into prompt templates, calls the
hosted model and returns structured answer/documentation/explanation
records. Without a model it answers from the heuristic analysis alone.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

from .analyzer import AnalysisResult
from .extractor import extract
from .metrics import complexity
from .model import ModelError, WatsonxClient
from .patterns import detected_labels
from .prompts import (
    SYSTEM_PROMPT,
    architecture_prompt,
    documentation_prompt,
    explanation_prompt,
    question_prompt,
)

logger = logging.getLogger(__name__)

MODEL_CONFIDENCE = 0.8
HEURISTIC_CONFIDENCE = 0.5
ERROR_CONFIDENCE = 0.1
MAX_RELATED_FILES = 8

# Relevance weights for related-file scoring
NAME_SCORE = 10
FUNCTION_SCORE = 6
CLASS_SCORE = 6
EXTENSION_SCORE = 5
PATH_SCORE = 3
CONTENT_SCORE = 2
KEY_FILE_SCORE = 1
KEY_FILE_HINTS = ("readme", "main", "index")

LANGUAGE_EXTENSIONS = {"javascript": "js", "typescript": "ts", "python": "py", "jsx": "jsx", "tsx": "tsx"}


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@dataclass
class RelatedFile:
    path: str
    relevance: int
    functions: int = 0
    classes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "relevance": self.relevance,
            "functions": self.functions,
            "classes": self.classes,
        }


@dataclass
class Answer:
    """An answer to one question about the codebase."""

    question: str
    answer: str
    confidence: float
    related_files: list[RelatedFile] = field(default_factory=list)
    timestamp: str = field(default_factory=_now)
    error: bool = False
    source: str = "model"

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "confidence": self.confidence,
            "relatedFiles": [r.to_dict() for r in self.related_files],
            "timestamp": self.timestamp,
            "error": self.error,
            "source": self.source,
        }


@dataclass
class Documentation:
    """Generated markdown documentation for a repository."""

    documentation: str
    repository: dict[str, Any] = field(default_factory=dict)
    confidence: float = MODEL_CONFIDENCE
    generated_at: str = field(default_factory=_now)
    error: bool = False
    source: str = "model"

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentation": self.documentation,
            "repository": dict(self.repository),
            "confidence": self.confidence,
            "generatedAt": self.generated_at,
            "error": self.error,
            "source": self.source,
        }


@dataclass
class Explanation:
    """Explanation of a single code segment."""

    summary: str
    purpose: str
    complexity: str = "Unknown"
    dependencies: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    file_path: str = ""
    language: str = ""
    error: bool = False
    source: str = "model"

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "purpose": self.purpose,
            "complexity": self.complexity,
            "dependencies": list(self.dependencies),
            "suggestions": list(self.suggestions),
            "filePath": self.file_path,
            "language": self.language,
            "error": self.error,
            "source": self.source,
        }


class CodebaseWhisperer:
    """Answers questions and writes documentation for an analyzed codebase."""

    def __init__(self, client: WatsonxClient | None = None):
        self.client = client if client is not None and client.is_configured() else None

    @property
    def uses_model(self) -> bool:
        return self.client is not None

    def _ask(self, prompt: str) -> str:
        return self.client.generate(f"{SYSTEM_PROMPT}\n\n{prompt}")

    # --- Q&A ---

    def answer_question(self, question: str, analysis: AnalysisResult) -> Answer:
        """Answer a question. Model failures become an error answer, never an exception."""
        related = self.find_related_files(question, analysis)
        if not self.uses_model:
            return self._heuristic_answer(question, analysis, related)

        try:
            text = self._ask(question_prompt(question, analysis))
        except ModelError as e:
            logger.error("Question failed: %s", e)
            return Answer(
                question=question,
                answer=(
                    f"I encountered an error while analyzing your question: {e}. "
                    "This might be due to API limitations or network issues. "
                    "Please try again or rephrase your question."
                ),
                confidence=ERROR_CONFIDENCE,
                related_files=related,
                error=True,
            )
        return Answer(question=question, answer=text, confidence=MODEL_CONFIDENCE, related_files=related)

    def find_related_files(self, question: str, analysis: AnalysisResult) -> list[RelatedFile]:
        """Score files against the question's words and keep the best matches."""
        q_lower = question.lower()
        words = [w for w in q_lower.split() if len(w) > 2]
        if not words:
            return []

        scored = []
        for f in analysis.files:
            name = f.name.lower()
            path = f.relative_path.lower()
            score = 0
            if any(w in name for w in words):
                score += NAME_SCORE
            if f.extension and f.extension in q_lower:
                score += EXTENSION_SCORE
            if any(w in path for w in words):
                score += PATH_SCORE
            if any(w in fn.lower() for fn in f.analysis.function_names for w in words):
                score += FUNCTION_SCORE
            if any(w in cls.lower() for cls in f.analysis.class_names for w in words):
                score += CLASS_SCORE
            content = f.content.lower()
            if content and any(w in content for w in words):
                score += CONTENT_SCORE
            if any(hint in name for hint in KEY_FILE_HINTS):
                score += KEY_FILE_SCORE
            if score > 0:
                scored.append(RelatedFile(
                    path=f.relative_path,
                    relevance=score,
                    functions=len(f.analysis.functions),
                    classes=len(f.analysis.classes),
                ))

        # Stable sort keeps scan order among equal scores
        scored.sort(key=lambda r: r.relevance, reverse=True)
        return scored[:MAX_RELATED_FILES]

    def _heuristic_answer(self, question: str, analysis: AnalysisResult, related: list[RelatedFile]) -> Answer:
        parts = []
        if analysis.insights:
            parts.append(f"Based on the heuristic analysis, this looks like a {analysis.insights.summary}")
        else:
            parts.append("The analysis found no files to reason about.")

        patterns = detected_labels(analysis.patterns)
        if patterns:
            parts.append(f"Detected patterns: {', '.join(patterns)}.")

        if related:
            listing = ", ".join(f"{r.path} ({r.functions} functions, {r.classes} classes)" for r in related)
            parts.append(f"Files most related to your question: {listing}.")
        else:
            parts.append("No files matched the words in your question.")

        parts.append("Configure watsonx.ai credentials for detailed natural-language answers.")
        return Answer(
            question=question,
            answer=" ".join(parts),
            confidence=HEURISTIC_CONFIDENCE,
            related_files=related,
            source="heuristic",
        )

    # --- Documentation ---

    def generate_documentation(self, analysis: AnalysisResult) -> Documentation:
        if not self.uses_model:
            return Documentation(
                documentation=self._heuristic_documentation(analysis),
                repository=analysis.repository,
                confidence=HEURISTIC_CONFIDENCE,
                source="heuristic",
            )

        try:
            text = self._ask(documentation_prompt(analysis))
        except ModelError as e:
            logger.error("Documentation generation failed: %s", e)
            return Documentation(
                documentation=(
                    "# Documentation Generation Failed\n\n"
                    "Unable to generate documentation. Please check your watsonx.ai configuration.\n\n"
                    f"Error: {e}"
                ),
                repository=analysis.repository,
                confidence=ERROR_CONFIDENCE,
                error=True,
            )
        return Documentation(documentation=text, repository=analysis.repository)

    def _heuristic_documentation(self, analysis: AnalysisResult) -> str:
        m = analysis.metrics
        insight = analysis.insights
        lines = [f"# {analysis.name} Documentation", "", "## Project Overview"]
        if m:
            lines.append(
                f"The project contains {m.total_files} files with {m.total_functions} functions "
                f"and {m.total_classes} classes across {', '.join(m.languages) or 'no known languages'}."
            )
        else:
            lines.append("No files were analyzed.")

        if insight:
            lines += ["", "## Architecture", f"**Style:** {insight.architectural_style}", ""]
            lines += [f"- {flow}" for flow in insight.data_flow]
            if insight.frameworks:
                lines += ["", "## Technical Stack"]
                lines += [f"- {fw}" for fw in insight.frameworks]
            if insight.components:
                lines += ["", "## Components"]
                for c in insight.components:
                    lines.append(f"- **{c.name}**: {c.responsibility} ({len(c.files)} files)")
            if insight.patterns:
                lines += ["", "## Patterns"]
                lines += [f"- {p}" for p in insight.patterns]
            if insight.recommendations:
                lines += ["", "## Recommendations"]
                lines += [f"- {r}" for r in insight.recommendations]

        if analysis.files:
            lines += ["", "## File Structure"]
            for f in analysis.files:
                lines.append(
                    f"- `{f.relative_path}`: {len(f.analysis.functions)} functions, "
                    f"{len(f.analysis.classes)} classes, {f.line_count} lines"
                )

        lines += ["", "*Generated from heuristic analysis. Configure watsonx.ai for full documentation.*"]
        return "\n".join(lines)

    # --- Architecture review ---

    def review_architecture(self, analysis: AnalysisResult) -> Documentation:
        """Model-written architecture review, or the heuristic summary without one."""
        if not self.uses_model:
            return Documentation(
                documentation=analysis.summary_for_prompt(),
                repository=analysis.repository,
                confidence=HEURISTIC_CONFIDENCE,
                source="heuristic",
            )
        try:
            text = self._ask(architecture_prompt(analysis))
        except ModelError as e:
            logger.error("Architecture review failed: %s", e)
            return Documentation(
                documentation=f"Architecture review unavailable: {e}",
                repository=analysis.repository,
                confidence=ERROR_CONFIDENCE,
                error=True,
            )
        return Documentation(documentation=text, repository=analysis.repository)

    # --- Code explanation ---

    def explain_code(self, code: str, file_path: str = "", language: str = "") -> Explanation:
        if not self.uses_model:
            return self._heuristic_explanation(code, file_path, language)

        try:
            text = self._ask(explanation_prompt(code, file_path, language))
        except ModelError as e:
            logger.error("Code explanation failed: %s", e)
            return Explanation(
                summary="Code analysis unavailable",
                purpose=f"Model request failed: {e}",
                suggestions=["Check the watsonx.ai configuration and try again"],
                file_path=file_path,
                language=language,
                error=True,
            )

        first_line = next((line.strip("# ").strip() for line in text.splitlines() if line.strip()), "")
        return Explanation(
            summary=first_line or "Explanation",
            purpose=text,
            file_path=file_path,
            language=language,
        )

    def _heuristic_explanation(self, code: str, file_path: str, language: str) -> Explanation:
        if "." in file_path:
            ext = file_path.rsplit(".", 1)[-1]
        else:
            ext = LANGUAGE_EXTENSIONS.get(language.lower(), language.lower() or "js")
        result = extract(code, file_path, ext)
        score = complexity(result)
        if score < 5:
            level = "Low"
        elif score < 15:
            level = "Medium"
        else:
            level = "High"

        summary = f"Defines {len(result.functions)} functions and {len(result.classes)} classes"
        details = []
        if result.functions:
            details.append(f"Functions: {', '.join(result.function_names)}.")
        if result.classes:
            details.append(f"Classes: {', '.join(result.class_names)}.")
        if result.call_sites:
            details.append(f"Makes {result.call_sites} calls.")

        suggestions = []
        if level == "High":
            suggestions.append("Consider splitting this code into smaller units")
        suggestions.append("Configure watsonx.ai for a detailed explanation")

        return Explanation(
            summary=summary,
            purpose=" ".join(details) or "No named constructs were found in this code.",
            complexity=level,
            dependencies=result.import_modules,
            suggestions=suggestions,
            file_path=file_path,
            language=language,
            source="heuristic",
        )
