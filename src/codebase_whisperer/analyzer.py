"""Repository analyzer - runs the scanning pipeline end to end.

Walks a directory (or takes uploaded files), filters binaries, extracts
per-file features, then builds the dependency graph, pattern verdicts,
aggregate metrics and the architectural insight in one pass.
"""

from __future__ import annotations

import datetime
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from .config import DEFAULT_MAX_FILE_BYTES
from .extractor import get_extractor
from .graph import DependencyGraph, build_graph
from .insights import ArchitecturalInsight, find_manifest, parse_manifest, summarize
from .metrics import MetricsSummary, aggregate
from .patterns import PatternVerdict, detect_patterns, detected_labels
from .source import FileInput, SourceFile, build_source_file

logger = logging.getLogger(__name__)

IGNORE_DIRS = {
    ".git", "node_modules", "__pycache__", ".venv", "venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "target", "build", "dist", ".next", ".nuxt", ".output",
    "vendor", "coverage", "htmlcov", ".nyc_output",
    ".idea", ".vscode", ".gradle",
}

BINARY_EXTENSIONS = {
    "pyc", "pyo", "class", "o", "obj", "a", "lib",
    "so", "dylib", "dll", "exe", "bin", "wasm",
    "jpg", "jpeg", "png", "gif", "ico", "webp", "bmp", "pdf",
    "woff", "woff2", "ttf", "eot", "otf",
    "zip", "tar", "gz", "bz2", "xz", "rar", "7z", "jar",
    "mp3", "mp4", "mov", "avi", "wav",
    "sqlite", "db",
}

# Bytes sniffed for NUL when the extension is not conclusive
SNIFF_BYTES = 8192

# Extension -> Language mapping
EXT_LANG = {
    "py": "Python", "pyi": "Python",
    "js": "JavaScript", "mjs": "JavaScript", "cjs": "JavaScript", "jsx": "JavaScript",
    "ts": "TypeScript", "tsx": "TypeScript",
    "html": "HTML", "htm": "HTML",
    "css": "CSS", "scss": "SCSS",
    "json": "JSON", "md": "Markdown",
    "yaml": "YAML", "yml": "YAML", "toml": "TOML",
    "sh": "Shell", "sql": "SQL",
}


@dataclass
class AnalysisResult:
    """Everything one scan produced: the payload for prompts and rendering."""

    repository: dict[str, Any]
    files: list[SourceFile] = field(default_factory=list)
    dependencies: DependencyGraph = field(default_factory=DependencyGraph)
    patterns: dict[str, PatternVerdict] = field(default_factory=dict)
    metrics: MetricsSummary | None = None
    insights: ArchitecturalInsight | None = None
    manifest_dependencies: list[str] = field(default_factory=list)
    timestamp: str = ""

    @property
    def name(self) -> str:
        return self.repository.get("name", "project")

    def file(self, relative_path: str) -> SourceFile | None:
        for f in self.files:
            if f.relative_path == relative_path:
                return f
        return None

    def to_dict(self, include_content: bool = True) -> dict[str, Any]:
        return {
            "repository": dict(self.repository),
            "files": [f.to_dict(include_content=include_content) for f in self.files],
            "dependencies": self.dependencies.to_dict(),
            "patterns": {name: v.to_dict() for name, v in self.patterns.items()},
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "aiInsights": self.insights.to_dict() if self.insights else None,
            "timestamp": self.timestamp,
        }

    def summary_for_prompt(self) -> str:
        """Generate a concise summary suitable for LLM prompt context."""
        lines = [f"Repository: {self.name} ({self.repository.get('type', 'unknown')})"]

        if self.metrics:
            m = self.metrics
            lines.append(
                f"Files: {m.total_files}, Lines: {m.total_lines}, "
                f"Functions: {m.total_functions}, Classes: {m.total_classes}, "
                f"Avg complexity: {m.avg_complexity}"
            )
            langs = sorted({EXT_LANG.get(ext, ext) for ext in m.languages if ext})
            if langs:
                lines.append(f"Languages: {', '.join(langs)}")
        else:
            lines.append("Files: 0")

        if self.insights:
            lines.append(f"Architectural style: {self.insights.architectural_style}")
            if self.insights.frameworks:
                lines.append(f"Frameworks: {', '.join(self.insights.frameworks)}")
            if self.insights.components:
                comps = ", ".join(f"{c.name} ({c.responsibility})" for c in self.insights.components)
                lines.append(f"Components: {comps}")

        patterns = detected_labels(self.patterns)
        if patterns:
            lines.append(f"Patterns: {', '.join(patterns)}")

        if self.dependencies.nodes:
            lines.append(
                f"Dependency graph: {len(self.dependencies.nodes)} files, "
                f"{len(self.dependencies.edges)} internal imports"
            )

        return "\n".join(lines)


def is_binary(name: str, data: bytes | None = None) -> bool:
    """Extension blocklist first, then a NUL-byte sniff."""
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext in BINARY_EXTENSIONS:
        return True
    if data is not None:
        return b"\x00" in data[:SNIFF_BYTES]
    return False


def scan_directory(root: str | Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> list[FileInput]:
    """Walk a directory and return decoded text files, sorted by path."""
    root = Path(root).resolve()
    if not root.is_dir():
        raise ValueError(f"Not a directory: {root}")

    inputs = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Skip ignored and hidden directories
        dirnames[:] = [d for d in dirnames if d not in IGNORE_DIRS and not d.startswith(".")]

        for fname in filenames:
            fpath = Path(dirpath) / fname
            rel = fpath.relative_to(root).as_posix()
            if is_binary(fname):
                continue
            try:
                size = fpath.stat().st_size
                if size > max_file_bytes:
                    logger.debug("Skipping %s (%d bytes over limit)", rel, size)
                    continue
                data = fpath.read_bytes()
            except OSError as e:
                logger.warning("Could not read %s: %s", rel, e)
                continue
            if is_binary(fname, data):
                continue
            inputs.append(FileInput.from_text(rel, data.decode("utf-8", errors="replace"), size=size))

    inputs.sort(key=lambda i: i.relative_path)
    logger.info("Found %d text files under %s", len(inputs), root)
    return inputs


def files_from_upload(payload: Iterable[dict[str, Any]]) -> list[FileInput]:
    """Convert uploaded `{name, content, size, relativePath}` dicts to inputs."""
    inputs = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        rel = item.get("relativePath") or item.get("path") or item.get("name")
        if not rel:
            continue
        content = item.get("content") or ""
        if not isinstance(content, str) or is_binary(str(rel), content[:SNIFF_BYTES].encode("utf-8", errors="replace")):
            continue
        size = item.get("size")
        inputs.append(FileInput.from_text(str(rel), content, size=size if isinstance(size, int) else None))
    return inputs


def analyze_files(
    inputs: Sequence[FileInput],
    repository: dict[str, Any] | None = None,
    prefer_ast: bool = False,
) -> AnalysisResult:
    """Run the full pipeline over already-decoded files."""
    repository = dict(repository or {"type": "upload", "name": "uploaded-project"})

    # Per-file stage
    files = [build_source_file(i, get_extractor(i.extension, prefer_ast)) for i in inputs]

    # Aggregate stage
    graph = build_graph(files)
    patterns = detect_patterns(files)
    metrics = aggregate(files) if files else None

    manifest = find_manifest(files)
    manifest_deps = parse_manifest(manifest.name, manifest.content) if manifest else []

    insights = summarize(files, patterns, manifest_deps, metrics)

    repository.setdefault("fileCount", len(files))
    repository.setdefault("analyzedAt", datetime.datetime.now(datetime.timezone.utc).isoformat())

    logger.info(
        "Analyzed %d files: %d edges, patterns=%s",
        len(files), len(graph.edges), detected_labels(patterns),
    )
    return AnalysisResult(
        repository=repository,
        files=files,
        dependencies=graph,
        patterns=patterns,
        metrics=metrics,
        insights=insights,
        manifest_dependencies=manifest_deps,
        timestamp=repository["analyzedAt"],
    )


def analyze_repo(
    path: str | Path,
    name: str | None = None,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    prefer_ast: bool = False,
    repository: dict[str, Any] | None = None,
) -> AnalysisResult:
    """Run full heuristic analysis on a local repository.

    `repository` overrides the default local-directory metadata, e.g. for
    a temporary clone of a remote repository.
    """
    path = Path(path).resolve()
    if not path.is_dir():
        raise ValueError(f"Not a directory: {path}")

    inputs = scan_directory(path, max_file_bytes=max_file_bytes)
    repository = dict(repository or {"type": "local", "name": name or path.name, "path": str(path)})
    return analyze_files(inputs, repository=repository, prefer_ast=prefer_ast)
