"""Aggregate insight summarizer.

Combines manifest frameworks, pattern verdicts and directory groupings
into one ArchitecturalInsight: a style label picked by first-match
priority, a handful of components, a data-flow narrative and a short
list of recommendations.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from .metrics import MetricsSummary
from .patterns import PATTERN_LABELS, PatternVerdict
from .source import SourceFile

logger = logging.getLogger(__name__)

MANIFEST_FILES = ("package.json", "requirements.txt", "pyproject.toml")

MAX_COMPONENTS = 6
MAX_PATTERNS = 5
MAX_RECOMMENDATIONS = 4
INSIGHT_CONFIDENCE = 0.9

# Dependency name -> framework label
FRAMEWORK_MAP = {
    "react": "React", "@types/react": "React",
    "vue": "Vue.js", "@vue/cli": "Vue.js",
    "angular": "Angular", "@angular/core": "Angular",
    "express": "Express.js",
    "next": "Next.js", "next.js": "Next.js",
    "nuxt": "Nuxt.js", "nuxt.js": "Nuxt.js",
    "svelte": "Svelte", "@sveltejs/kit": "Svelte",
    "typescript": "TypeScript",
    "webpack": "Webpack",
    "vite": "Vite",
    "jest": "Testing Framework", "vitest": "Testing Framework",
    "mocha": "Testing Framework", "pytest": "Testing Framework",
    "flask": "Flask", "django": "Django", "fastapi": "FastAPI",
}

CLIENT_FRAMEWORKS = ("React", "Vue.js", "Angular")
SERVER_FRAMEWORKS = ("Express.js", "Flask", "Django", "FastAPI")
FULLSTACK_FRAMEWORKS = ("Next.js", "Nuxt.js")
BUILD_TOOLS = ("Vite", "Webpack")

# Directory keyword -> responsibility, checked in order
RESPONSIBILITIES = (
    (("component",), "UI Components"),
    (("service",), "Business Logic"),
    (("api", "route"), "API Endpoints"),
    (("util", "helper"), "Utility Functions"),
    (("config",), "Configuration"),
    (("test",), "Testing"),
)
DEFAULT_RESPONSIBILITY = "Core functionality"

# File name keyword -> pattern label
FILE_NAME_PATTERNS = (
    (("component",), "Component-Based Architecture"),
    (("service",), "Service Layer Pattern"),
    (("controller",), "MVC Pattern"),
    (("model",), "Data Models"),
    (("store", "redux"), "State Management"),
    (("middleware",), "Middleware Pattern"),
    (("config",), "Configuration Management"),
    (("util", "helper"), "Utility Functions"),
)


@dataclass
class Component:
    name: str
    responsibility: str
    files: list[str] = field(default_factory=list)
    functions: int = 0
    classes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "responsibility": self.responsibility,
            "files": list(self.files),
            "functions": self.functions,
            "classes": self.classes,
        }


@dataclass
class ArchitecturalInsight:
    architectural_style: str
    components: list[Component] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    data_flow: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    confidence: float = INSIGHT_CONFIDENCE
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "architecturalStyle": self.architectural_style,
            "components": [c.to_dict() for c in self.components],
            "patterns": list(self.patterns),
            "frameworks": list(self.frameworks),
            "dataFlow": list(self.data_flow),
            "recommendations": list(self.recommendations),
            "confidence": self.confidence,
            "summary": self.summary,
        }


def parse_manifest(filename: str, content: str) -> list[str]:
    """Declared dependency names from a manifest. Unparseable input gives []."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1].lower()
    try:
        if base == "package.json":
            return _parse_package_json(content)
        if base == "requirements.txt":
            return _parse_requirements(content)
        if base == "pyproject.toml":
            return _parse_pyproject(content)
    except Exception:
        logger.debug("Could not parse %s for framework detection", filename, exc_info=True)
    return []


def _parse_package_json(content: str) -> list[str]:
    try:
        pkg = json.loads(content)
    except (json.JSONDecodeError, ValueError):
        logger.debug("package.json is not valid JSON")
        return []
    if not isinstance(pkg, dict):
        return []

    names: list[str] = []
    for dep_key in ("dependencies", "devDependencies"):
        deps = pkg.get(dep_key) or {}
        if isinstance(deps, dict):
            names.extend(deps.keys())
    return list(dict.fromkeys(names))


def _parse_requirements(content: str) -> list[str]:
    names = []
    for line in content.split("\n"):
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = re.match(r"^([A-Za-z0-9][A-Za-z0-9._-]*)", line)
        if match:
            names.append(match.group(1).lower())
    return list(dict.fromkeys(names))


_REQUIREMENT_NAME = re.compile(r"['\"]([A-Za-z0-9][A-Za-z0-9._-]*)")
_QUOTED_STRING = re.compile(r"(['\"]).*?\1")


def _parse_pyproject(content: str) -> list[str]:
    """PEP 621 dependency lists plus Poetry dependency tables."""
    names: list[str] = []
    table = ""
    in_list = False
    for raw in content.split("\n"):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if in_list:
            names.extend(_REQUIREMENT_NAME.findall(line))
            in_list = "]" not in _QUOTED_STRING.sub("", line)
            continue
        if re.match(r"^\[[\w.\-\"]+\]$", line):
            table = line.strip("[]")
            continue

        key_match = re.match(r"^([\w.\-]+)\s*=\s*(.*)$", line)
        if not key_match:
            continue
        key, value = key_match.groups()
        if (table == "project" and key == "dependencies") or table == "project.optional-dependencies":
            if value.startswith("["):
                names.extend(_REQUIREMENT_NAME.findall(value))
                in_list = "]" not in _QUOTED_STRING.sub("", value)
        elif table.startswith("tool.poetry") and table.endswith("dependencies") and key != "python":
            names.append(key)
    return list(dict.fromkeys(n.lower() for n in names))


def detect_frameworks(dependency_names: Sequence[str]) -> list[str]:
    frameworks: list[str] = []
    for dep in dependency_names:
        fw = FRAMEWORK_MAP.get(dep.lower())
        if fw and fw not in frameworks:
            frameworks.append(fw)
    return frameworks


def find_manifest(files: Sequence[SourceFile]) -> SourceFile | None:
    """First manifest in priority order, preferring the repository root."""
    for manifest in MANIFEST_FILES:
        candidates = [f for f in files if f.name == manifest]
        if candidates:
            return min(candidates, key=lambda f: f.relative_path.count("/"))
    return None


def choose_style(frameworks: Sequence[str], file_types: set[str]) -> str:
    """First matching condition wins."""
    if any(fw in frameworks for fw in CLIENT_FRAMEWORKS):
        return "Component-Based SPA"
    if any(fw in frameworks for fw in SERVER_FRAMEWORKS):
        return "REST API / Backend Service"
    if any(fw in frameworks for fw in FULLSTACK_FRAMEWORKS):
        return "Full-Stack Framework"
    if {"html", "css", "js"} <= file_types:
        return "Vanilla Web Application"
    return "Modular Architecture"


def responsibility_for(directory: str) -> str:
    lower = directory.lower()
    for keywords, label in RESPONSIBILITIES:
        if any(kw in lower for kw in keywords):
            return label
    return DEFAULT_RESPONSIBILITY


def group_components(files: Sequence[SourceFile]) -> list[Component]:
    """Bucket files by top-level directory, in first-seen order."""
    groups: dict[str, list[SourceFile]] = {}
    for f in files:
        parts = f.relative_path.split("/")
        key = parts[0] if len(parts) > 1 else "root"
        groups.setdefault(key, []).append(f)

    components = []
    for directory, group in groups.items():
        components.append(Component(
            name="Main Application" if directory == "root" else directory,
            responsibility=responsibility_for(directory),
            files=[f.name for f in group],
            functions=sum(len(f.analysis.functions) for f in group),
            classes=sum(len(f.analysis.classes) for f in group),
        ))
    return components


def name_patterns(files: Sequence[SourceFile]) -> list[str]:
    found: list[str] = []
    for f in files:
        lower = f.name.lower()
        for keywords, label in FILE_NAME_PATTERNS:
            if label not in found and any(kw in lower for kw in keywords):
                found.append(label)
    return found


def _data_flow(frameworks: Sequence[str], patterns: Sequence[str], file_types: set[str]) -> list[str]:
    flow = []
    if "React" in frameworks or "Vue.js" in frameworks:
        flow.append("Props and state flow through component hierarchy")
        if "State Management" in patterns:
            flow.append("Centralized state management with store/actions")
    if "Express.js" in frameworks:
        flow.append("HTTP requests → Routes → Controllers → Services → Response")
    if {"js", "html"} <= file_types:
        flow.append("DOM manipulation and event handling in JavaScript")
    return flow or ["Standard file-based code organization"]


def _recommendations(
    metrics: MetricsSummary | None,
    frameworks: Sequence[str],
    patterns: Sequence[str],
    file_types: set[str],
    component_count: int,
) -> list[str]:
    total_files = metrics.total_files if metrics else 0
    total_functions = metrics.total_functions if metrics else 0

    recs = []
    if total_files > 50 and "TypeScript" not in frameworks:
        recs.append("Consider migrating to TypeScript for better type safety")
    if total_functions > 100 and "Testing Framework" not in frameworks:
        recs.append("Add comprehensive testing framework (Jest/Vitest)")
    if "js" in file_types and "Configuration Management" not in patterns:
        recs.append("Implement environment configuration management")
    if component_count > 5 and "Component-Based Architecture" not in patterns:
        recs.append("Consider organizing code into reusable components")
    if total_files > 20 and not any(tool in frameworks for tool in BUILD_TOOLS):
        recs.append("Add build tool for bundling and optimization")
    return recs[:MAX_RECOMMENDATIONS]


def summarize(
    files: Sequence[SourceFile],
    patterns: dict[str, PatternVerdict],
    manifest_dependencies: Sequence[str] | None = None,
    metrics: MetricsSummary | None = None,
) -> ArchitecturalInsight:
    """Build the insight record for one analysis.

    `confidence` is a fixed constant, not a calibrated probability.
    """
    frameworks = detect_frameworks(manifest_dependencies or [])
    file_types = {f.extension for f in files if f.extension}
    style = choose_style(frameworks, file_types)

    components = group_components(files)

    pattern_names = name_patterns(files)
    for name, verdict in patterns.items():
        label = PATTERN_LABELS.get(name, name)
        if verdict.detected and label not in pattern_names:
            pattern_names.append(label)

    recommendations = _recommendations(metrics, frameworks, pattern_names, file_types, len(components))

    total_files = metrics.total_files if metrics else len(files)
    total_functions = metrics.total_functions if metrics else 0
    return ArchitecturalInsight(
        architectural_style=style,
        components=components[:MAX_COMPONENTS],
        patterns=pattern_names[:MAX_PATTERNS],
        frameworks=frameworks,
        data_flow=_data_flow(frameworks, pattern_names, file_types),
        recommendations=recommendations,
        confidence=INSIGHT_CONFIDENCE,
        summary=(
            f"{style} with {total_files} files, {total_functions} functions, "
            f"and {len(frameworks)} frameworks/tools detected."
        ),
    )
