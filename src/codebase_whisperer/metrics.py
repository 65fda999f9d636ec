"""Per-file complexity and repository-wide aggregate metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from .extractor import ExtractionResult

if TYPE_CHECKING:
    from .source import SourceFile

FUNCTION_WEIGHT = 1.0
CLASS_WEIGHT = 2.0
CALL_WEIGHT = 0.1


class EmptyFileSetError(ValueError):
    """Aggregate metrics were requested for zero files."""


@dataclass
class MetricsSummary:
    total_lines: int = 0
    total_files: int = 0
    total_functions: int = 0
    total_classes: int = 0
    avg_complexity: float = 0.0
    languages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLines": self.total_lines,
            "totalFiles": self.total_files,
            "totalFunctions": self.total_functions,
            "totalClasses": self.total_classes,
            "avgComplexity": self.avg_complexity,
            "languages": list(self.languages),
        }


def count_lines(content: str) -> int:
    """Number of newline-delimited segments; 0 for empty content."""
    if not content:
        return 0
    return len(content.split("\n"))


def complexity(analysis: ExtractionResult) -> float:
    """Heuristic complexity: functions + 2 x classes + 0.1 x call sites."""
    return (
        FUNCTION_WEIGHT * len(analysis.functions)
        + CLASS_WEIGHT * len(analysis.classes)
        + CALL_WEIGHT * max(analysis.call_sites, 0)
    )


def aggregate(files: Sequence[SourceFile]) -> MetricsSummary:
    """Sum per-file counts and average the complexity scores.

    Raises:
        EmptyFileSetError: when `files` is empty. The mean of nothing is
            undefined, so callers must check before asking.
    """
    if not files:
        raise EmptyFileSetError("Cannot aggregate metrics over an empty file set")

    languages = list(dict.fromkeys(f.extension for f in files))
    avg = sum(f.complexity for f in files) / len(files)

    return MetricsSummary(
        total_lines=sum(f.line_count for f in files),
        total_files=len(files),
        total_functions=sum(len(f.analysis.functions) for f in files),
        total_classes=sum(len(f.analysis.classes) for f in files),
        avg_complexity=round(avg, 2),
        languages=languages,
    )
