"""Per-file records handed through the analysis pipeline."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any

from .extractor import ExtractionResult, Extractor, extract, normalize_extension
from .metrics import complexity, count_lines


@dataclass(frozen=True)
class FileInput:
    """One decoded text file supplied by a caller (directory walk or upload)."""

    name: str
    relative_path: str
    content: str
    extension: str
    size: int

    @classmethod
    def from_text(cls, relative_path: str, content: str, size: int | None = None) -> "FileInput":
        relative_path = relative_path.replace("\\", "/").lstrip("/")
        name = posixpath.basename(relative_path)
        extension = normalize_extension(name.rsplit(".", 1)[-1]) if "." in name else ""
        if size is None:
            size = len(content.encode("utf-8", errors="replace"))
        return cls(name=name, relative_path=relative_path, content=content, extension=extension, size=size)


@dataclass(frozen=True)
class SourceFile:
    """A scanned file and everything derived from its text."""

    name: str
    relative_path: str
    content: str
    extension: str
    size: int
    line_count: int = 0
    analysis: ExtractionResult = field(default_factory=ExtractionResult)
    complexity: float = 0.0

    @property
    def directory(self) -> str:
        return posixpath.dirname(self.relative_path)

    def to_dict(self, include_content: bool = True) -> dict[str, Any]:
        data = {
            "name": self.name,
            "relativePath": self.relative_path,
            "extension": self.extension,
            "size": self.size,
            "lineCount": self.line_count,
            "complexity": round(self.complexity, 2),
            "analysis": self.analysis.to_dict(),
        }
        if include_content:
            data["content"] = self.content
        return data


def build_source_file(item: FileInput, extractor: Extractor = extract) -> SourceFile:
    """Run extraction and per-file metrics for one input."""
    analysis = extractor(item.content, item.name, item.extension)
    return SourceFile(
        name=item.name,
        relative_path=item.relative_path,
        content=item.content,
        extension=normalize_extension(item.extension),
        size=item.size,
        line_count=count_lines(item.content),
        analysis=analysis,
        complexity=complexity(analysis),
    )
