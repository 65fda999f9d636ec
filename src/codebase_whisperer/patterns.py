"""Architectural pattern detectors.

Each detector is a pure function over the full file collection and
returns a PatternVerdict with the raw counts behind it. Detectors never
look at each other's output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .source import SourceFile

OBSERVER_METHODS = {"subscribe", "unsubscribe", "notify", "addeventlistener"}
COMPONENT_EXTENSIONS = {"jsx", "tsx", "vue", "svelte"}

_HOOK_NAME = re.compile(r"^use[A-Z0-9]")


@dataclass(frozen=True)
class PatternVerdict:
    detected: bool
    confidence: float
    evidence: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "detected": self.detected,
            "confidence": round(self.confidence, 4),
            "evidence": dict(self.evidence),
        }


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _mentions(f: SourceFile, keyword: str, folder: str | None = None) -> bool:
    """Name substring match, or a path segment named `folder`."""
    if keyword in f.name.lower():
        return True
    segments = f.relative_path.lower().split("/")[:-1]
    return (folder or keyword) in segments


def detect_mvc(files: Sequence[SourceFile]) -> PatternVerdict:
    has_models = any(_mentions(f, "model", "models") for f in files)
    has_views = any(_mentions(f, "view", "views") for f in files)
    has_controllers = any(_mentions(f, "controller", "controllers") for f in files)
    present = int(has_models) + int(has_views) + int(has_controllers)
    return PatternVerdict(
        detected=present == 3,
        confidence=present / 3,
        evidence={"hasModels": has_models, "hasViews": has_views, "hasControllers": has_controllers},
    )


def detect_modules(files: Sequence[SourceFile]) -> PatternVerdict:
    exporting = sum(1 for f in files if f.analysis.exports)
    importing = sum(1 for f in files if f.analysis.imports)
    detected = exporting > 0 and importing > 0
    return PatternVerdict(
        detected=detected,
        confidence=0.8 if detected else 0.0,
        evidence={"exportingFiles": exporting, "importingFiles": importing},
    )


def detect_factories(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(
        1
        for f in files
        for fn in f.analysis.functions
        if "factory" in fn.name.lower() or "create" in fn.name.lower()
    )
    return PatternVerdict(
        detected=count > 0,
        confidence=_clamp(count / len(files)) if files else 0.0,
        evidence={"factoryFunctions": count},
    )


def detect_singletons(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(
        1
        for f in files
        for cls in f.analysis.classes
        if "singleton" in cls.name.lower() or "getInstance" in cls.methods
    )
    return PatternVerdict(
        detected=count > 0,
        confidence=0.9 if count else 0.0,
        evidence={"singletonClasses": count},
    )


def detect_observers(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(
        1
        for f in files
        for fn in f.analysis.functions
        if fn.name.lower() in OBSERVER_METHODS
    )
    return PatternVerdict(
        detected=count > 0,
        confidence=_clamp(count / 10),
        evidence={"observerMethods": count},
    )


def detect_components(files: Sequence[SourceFile]) -> PatternVerdict:
    named = 0
    declared = 0
    for f in files:
        if "component" in f.relative_path.lower():
            named += 1
        elif f.extension in COMPONENT_EXTENSIONS and any(
            n[:1].isupper() for n in f.analysis.function_names + f.analysis.class_names
        ):
            declared += 1
    count = named + declared
    return PatternVerdict(
        detected=count > 0,
        confidence=_clamp(count / len(files)) if files else 0.0,
        evidence={"componentFiles": named, "componentDeclarations": declared},
    )


def detect_hooks(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(1 for f in files for fn in f.analysis.functions if _HOOK_NAME.match(fn.name))
    return PatternVerdict(
        detected=count > 0,
        confidence=_clamp(count / 5),
        evidence={"hookFunctions": count},
    )


def detect_middleware(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(1 for f in files if "middleware" in f.relative_path.lower())
    return PatternVerdict(
        detected=count > 0,
        confidence=0.7 if count else 0.0,
        evidence={"middlewareFiles": count},
    )


def detect_service_layer(files: Sequence[SourceFile]) -> PatternVerdict:
    count = sum(1 for f in files if "service" in f.relative_path.lower())
    return PatternVerdict(
        detected=count > 0,
        confidence=_clamp(count / 3),
        evidence={"serviceFiles": count},
    )


DETECTORS: dict[str, Callable[[Sequence[SourceFile]], PatternVerdict]] = {
    "mvc": detect_mvc,
    "modules": detect_modules,
    "factories": detect_factories,
    "singletons": detect_singletons,
    "observers": detect_observers,
    "componentPattern": detect_components,
    "hooks": detect_hooks,
    "mvcMiddleware": detect_middleware,
    "serviceLayer": detect_service_layer,
}

# Human-readable names used in insight summaries
PATTERN_LABELS = {
    "mvc": "MVC Pattern",
    "modules": "Module Pattern",
    "factories": "Factory Pattern",
    "singletons": "Singleton Pattern",
    "observers": "Observer Pattern",
    "componentPattern": "Component-Based Architecture",
    "hooks": "Hooks Pattern",
    "mvcMiddleware": "Middleware Pattern",
    "serviceLayer": "Service Layer Pattern",
}


def detect_patterns(files: Sequence[SourceFile]) -> dict[str, PatternVerdict]:
    """Run every detector over the collection."""
    return {name: detector(files) for name, detector in DETECTORS.items()}


def detected_labels(patterns: dict[str, PatternVerdict]) -> list[str]:
    return [PATTERN_LABELS.get(name, name) for name, v in patterns.items() if v.detected]
