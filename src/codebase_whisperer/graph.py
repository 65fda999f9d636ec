"""Dependency graph builder.

One node per scanned file, one edge per relative import that resolves
to another scanned file. Package imports never produce edges: the graph
models structure inside the repository only.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from .source import SourceFile

logger = logging.getLogger(__name__)

# Tried in order when a specifier omits its extension
RESOLVE_EXTENSIONS = ("js", "jsx", "ts", "tsx", "mjs", "cjs", "py")
INDEX_FILES = ("index.js", "index.jsx", "index.ts", "index.tsx", "index.mjs", "__init__.py")

# Visual grouping used by the diagram renderer
EXTENSION_GROUPS = {
    "js": 1, "mjs": 1, "cjs": 1,
    "jsx": 2, "tsx": 2,
    "ts": 3,
    "py": 4,
    "css": 5, "scss": 5,
    "html": 6,
}

_PY_RELATIVE = re.compile(r"^(\.+)([\w.]*)$")


@dataclass(frozen=True)
class Node:
    id: str
    name: str
    type: str
    group: int
    size: int
    complexity: float
    functions: int
    classes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "group": self.group,
            "size": self.size,
            "complexity": round(self.complexity, 2),
            "functions": self.functions,
            "classes": self.classes,
        }


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    type: str = "import"
    weight: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "type": self.type, "weight": self.weight}


@dataclass
class DependencyGraph:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @property
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def dependents_of(self, node_id: str) -> list[str]:
        return [e.source for e in self.edges if e.target == node_id]

    def dependencies_of(self, node_id: str) -> list[str]:
        return [e.target for e in self.edges if e.source == node_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def python_relative_to_path(specifier: str) -> str | None:
    """Rewrite `.mod` / `..pkg.mod` into `./mod` / `../pkg/mod`."""
    match = _PY_RELATIVE.match(specifier)
    if not match:
        return None
    dots, dotted = match.groups()
    prefix = "./" if len(dots) == 1 else "../" * (len(dots) - 1)
    return prefix + dotted.replace(".", "/")


def resolve_import(specifier: str, from_path: str, known_paths: Iterable[str]) -> str | None:
    """Resolve a relative specifier against the importing file's directory.

    Returns the matching scanned path, or None when nothing matches.
    """
    if not is_relative_specifier(specifier):
        rewritten = python_relative_to_path(specifier)
        if rewritten is None:
            return None
        specifier = rewritten

    known = known_paths if isinstance(known_paths, (set, frozenset)) else set(known_paths)
    base = posixpath.normpath(posixpath.join(posixpath.dirname(from_path), specifier))
    if base.startswith("../"):
        return None

    candidates = [base]
    candidates.extend(f"{base}.{ext}" for ext in RESOLVE_EXTENSIONS)
    candidates.extend(posixpath.join(base, index) if base != "." else index for index in INDEX_FILES)
    for candidate in candidates:
        if candidate in known:
            return candidate
    return None


def build_graph(files: Sequence[SourceFile]) -> DependencyGraph:
    """Build a fresh graph from scanned files."""
    graph = DependencyGraph()
    known = {f.relative_path for f in files}

    for f in files:
        graph.nodes.append(Node(
            id=f.relative_path,
            name=f.name,
            type="file",
            group=EXTENSION_GROUPS.get(f.extension, 1),
            size=f.size,
            complexity=f.complexity,
            functions=len(f.analysis.functions),
            classes=len(f.analysis.classes),
        ))

    seen: set[tuple[str, str]] = set()
    for f in files:
        for imp in f.analysis.imports:
            target = resolve_import(imp.module, f.relative_path, known)
            if target is None or (f.relative_path, target) in seen:
                continue
            seen.add((f.relative_path, target))
            graph.edges.append(Edge(source=f.relative_path, target=target))

    logger.debug("Built dependency graph: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph
