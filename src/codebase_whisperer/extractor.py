"""Text feature extractor - Layer 1. No parser needed.

Recognizes functions, classes, imports and exports in raw source text
with ordered regular-expression rules per language family. The scan is
a heuristic: it tolerates false positives and never raises. Any failure
inside a scan degrades to an empty ExtractionResult.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = {"js", "jsx", "ts", "tsx", "mjs", "cjs"}
PYTHON_EXTENSIONS = {"py", "pyi"}

# Characters inspected before a function match for the `async` token
ASYNC_WINDOW = 10

KEYWORDS = {
    "if", "else", "for", "while", "do", "switch", "case", "catch", "try",
    "finally", "return", "function", "new", "typeof", "delete", "void",
    "with", "yield", "await", "throw", "super", "import", "export",
    "class", "extends", "def", "lambda", "elif", "except", "print",
    "assert", "del", "not", "and", "or", "in", "is", "from", "as",
}


@dataclass(frozen=True)
class FunctionRecord:
    name: str
    line: int
    is_async: bool = False
    kind: str = "function"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "line": self.line, "isAsync": self.is_async, "type": self.kind}


@dataclass(frozen=True)
class ClassRecord:
    name: str
    line: int
    methods: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "line": self.line, "methods": list(self.methods), "type": "class"}


@dataclass(frozen=True)
class ImportRecord:
    module: str
    line: int
    kind: str = "import"

    def to_dict(self) -> dict[str, Any]:
        return {"module": self.module, "line": self.line, "type": self.kind}


@dataclass(frozen=True)
class ExportRecord:
    name: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "line": self.line}


@dataclass(frozen=True)
class ExtractionResult:
    """Named constructs found in one file, in order of first appearance."""

    functions: tuple[FunctionRecord, ...] = ()
    classes: tuple[ClassRecord, ...] = ()
    imports: tuple[ImportRecord, ...] = ()
    exports: tuple[ExportRecord, ...] = ()
    call_sites: int = 0

    @property
    def function_names(self) -> list[str]:
        return [f.name for f in self.functions]

    @property
    def class_names(self) -> list[str]:
        return [c.name for c in self.classes]

    @property
    def import_modules(self) -> list[str]:
        return [i.module for i in self.imports]

    def is_empty(self) -> bool:
        return not (self.functions or self.classes or self.imports or self.exports)

    def to_dict(self) -> dict[str, Any]:
        return {
            "functions": [f.to_dict() for f in self.functions],
            "classes": [c.to_dict() for c in self.classes],
            "imports": [i.to_dict() for i in self.imports],
            "exports": [e.to_dict() for e in self.exports],
            "calls": self.call_sites,
        }


Extractor = Callable[[str, str, str], ExtractionResult]


# --- Script family (JavaScript / TypeScript) ---

_IDENT = r"[A-Za-z_$][\w$]*"

SCRIPT_FUNCTION_RULES = (
    # function name(  /  function* name(
    re.compile(rf"\bfunction\b\s*(?:\*\s*)?({_IDENT})\s*\("),
    # const name = [async] function
    re.compile(rf"\b(?:const|let|var)\s+({_IDENT})\s*=\s*(?:async\s+)?function\b"),
    # const name = [async] (args) =>  /  const name = arg =>
    re.compile(
        rf"\b(?:const|let|var)\s+({_IDENT})\s*(?::[^=\n]+)?=\s*(?:async\s+)?"
        rf"(?:\([^()]*\)|{_IDENT})\s*(?::[^=;{{\n]+?)?=>"
    ),
    # name: [async] function
    re.compile(rf"\b({_IDENT})\s*:\s*(?:async\s+)?function\b"),
    # object literal / class method shorthand: name(args) {
    re.compile(
        rf"^[ \t]*(?:(?:static|async|public|private|protected|readonly|override|get|set)[ \t]+)*"
        rf"(?:\*[ \t]*)?({_IDENT})\s*\([^()\n]*\)\s*(?::[^{{\n]+)?\{{",
        re.MULTILINE,
    ),
)

METHOD_RULE = SCRIPT_FUNCTION_RULES[-1]

CLASS_RULE = re.compile(rf"\bclass\s+({_IDENT})")

_QUOTED = r"""['"`]([^'"`\n]+)['"`]"""

# Each character of an import/export clause is consumed by a single
# quantifier; the clause stops at the next statement keyword.
_CLAUSE = r"""(?:(?!\b(?:from|import|export)\b)[^;'"`()])*"""

SCRIPT_IMPORT_RULES = (
    (re.compile(rf"\b(?:import|export)\b{_CLAUSE}\bfrom\s*{_QUOTED}"), "import"),
    (re.compile(rf"\bimport\s*{_QUOTED}"), "import"),
    (re.compile(rf"\bimport\(\s*{_QUOTED}\s*\)"), "import"),
    (re.compile(rf"\brequire\(\s*{_QUOTED}\s*\)"), "require"),
)

COMMONJS_EXPORT_RULE = re.compile(
    rf"\bmodule\.exports(?:\.({_IDENT}))?|(?<![\w$.])exports\.({_IDENT})"
)
EXPORT_LIST_RULE = re.compile(r"\bexport\s*(?:type\s*)?\{([^}]*)\}")
# `async` before a parameter list or arrow is an anonymous export
EXPORT_DECL_RULE = re.compile(
    rf"\bexport\s+(?!\s*\{{|\s*type\s*\{{|\s*\*)(?:declare\s+)?(?:default\s+)?"
    rf"(?:async\s+(?=function\b)|abstract\s+(?=class\b))?"
    rf"(?:function\b\s*\*?|class\b|const\b|let\b|var\b|interface\b|type\b|enum\b|namespace\b)?\s*"
    rf"(?!async\b\s*(?:\(|=>|{_IDENT}\s*=>))({_IDENT})?"
)

CALL_RULE = re.compile(rf"(?<![\w$])({_IDENT})\s*\(")


# --- Python family ---

PY_FUNCTION_RULE = re.compile(r"^[ \t]*(?:async[ \t]+)?def[ \t]+([A-Za-z_]\w*)", re.MULTILINE)
PY_METHOD_RULE = re.compile(r"^[ \t]+(?:async[ \t]+)?def[ \t]+([A-Za-z_]\w*)", re.MULTILINE)
PY_FROM_IMPORT_RULE = re.compile(r"^[ \t]*from[ \t]+(\.*[\w.]*)[ \t]+import\b", re.MULTILINE)
PY_IMPORT_RULE = re.compile(
    r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)",
    re.MULTILINE,
)
PY_ALL_RULE = re.compile(r"^__all__\s*\+?=\s*[\[(]([^\])]*)[\])]", re.MULTILINE)
PY_CALL_RULE = re.compile(r"(?<![\w])([A-Za-z_]\w*)\s*\(")


def extract(content: str, filename: str = "", extension: str = "") -> ExtractionResult:
    """Extract named constructs from one file's decoded text.

    Unknown extensions yield an empty result without scanning. Internal
    errors are logged and also yield an empty result.
    """
    try:
        if not extension and "." in filename:
            extension = filename.rsplit(".", 1)[-1]
        ext = normalize_extension(extension)
        if ext in SCRIPT_EXTENSIONS:
            return _scan_script(content)
        if ext in PYTHON_EXTENSIONS:
            return _scan_python(content)
    except Exception:
        logger.warning("Extraction failed for %s; recording empty result", filename or "<text>", exc_info=True)
    return ExtractionResult()


def extract_python_ast(content: str, filename: str = "", extension: str = "py") -> ExtractionResult:
    """Syntax-tree variant of `extract` for Python sources.

    Falls back to the regex scan when the text does not parse.
    """
    try:
        tree = ast.parse(content)
    except (SyntaxError, ValueError, TypeError):
        return extract(content, filename, extension)

    try:
        return _walk_python_tree(tree)
    except Exception:
        logger.warning("AST extraction failed for %s; recording empty result", filename or "<text>", exc_info=True)
        return ExtractionResult()


def get_extractor(extension: str, prefer_ast: bool = False) -> Extractor:
    """Pick an extraction strategy for a file extension."""
    if prefer_ast and normalize_extension(extension) in PYTHON_EXTENSIONS:
        return extract_python_ast
    return extract


def normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


def _line_of(content: str, index: int) -> int:
    return content.count("\n", 0, index) + 1


def _is_async(content: str, match: re.Match) -> bool:
    window = content[max(0, match.start() - ASYNC_WINDOW):match.start()]
    return "async" in window or "async" in match.group(0)


def _collect_functions(content: str, rules) -> tuple[list[FunctionRecord], set[int]]:
    """Run function rules; first occurrence of a name wins."""
    hits = []
    for order, rule in enumerate(rules):
        for match in rule.finditer(content):
            name = match.group(1)
            if not name or name in KEYWORDS:
                continue
            hits.append((match.start(1), order, name, match))

    hits.sort(key=lambda h: (h[0], h[1]))
    seen: set[str] = set()
    functions = []
    declaration_sites = set()
    for pos, _, name, match in hits:
        declaration_sites.add(pos)
        if name in seen:
            continue
        seen.add(name)
        functions.append(FunctionRecord(
            name=name,
            line=_line_of(content, pos),
            is_async=_is_async(content, match),
        ))
    return functions, declaration_sites


def _count_calls(content: str, rule: re.Pattern, declaration_sites: set[int]) -> int:
    count = 0
    for match in rule.finditer(content):
        if match.start(1) in declaration_sites or match.group(1) in KEYWORDS:
            continue
        count += 1
    return count


def _add_import(imports: list, seen: set[str], module: str, line: int, kind: str = "import") -> None:
    module = module.strip()
    if module and module not in seen:
        seen.add(module)
        imports.append(ImportRecord(module=module, line=line, kind=kind))


def _add_export(exports: list, seen: set[str], name: str | None, line: int) -> None:
    name = name or "default"
    if name not in seen:
        seen.add(name)
        exports.append(ExportRecord(name=name, line=line))


def _brace_body(content: str, start: int) -> str:
    """Text between the first `{` at/after start and its matching `}`."""
    open_at = content.find("{", start)
    if open_at < 0:
        return ""
    depth = 0
    for i in range(open_at, len(content)):
        ch = content[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return content[open_at + 1:i]
    return content[open_at + 1:]


def _indented_body(content: str, class_start: int) -> str:
    """Lines indented deeper than the class statement's own line."""
    line_start = content.rfind("\n", 0, class_start) + 1
    header = content[line_start:class_start]
    indent = len(header) - len(header.lstrip())
    body = []
    lines = content[class_start:].split("\n")[1:]
    for line in lines:
        if not line.strip():
            body.append(line)
            continue
        if len(line) - len(line.lstrip()) <= indent:
            break
        body.append(line)
    return "\n".join(body)


def _unique(names) -> tuple[str, ...]:
    return tuple(dict.fromkeys(n for n in names if n not in KEYWORDS))


def _scan_script(content: str) -> ExtractionResult:
    functions, declaration_sites = _collect_functions(content, SCRIPT_FUNCTION_RULES)

    classes = []
    for match in CLASS_RULE.finditer(content):
        body = _brace_body(content, match.end())
        methods = _unique(m.group(1) for m in METHOD_RULE.finditer(body))
        classes.append(ClassRecord(name=match.group(1), line=_line_of(content, match.start()), methods=methods))

    hits = []
    for order, (rule, kind) in enumerate(SCRIPT_IMPORT_RULES):
        for match in rule.finditer(content):
            hits.append((match.start(), order, match.group(1), kind))
    hits.sort(key=lambda h: (h[0], h[1]))
    imports: list[ImportRecord] = []
    seen_imports: set[str] = set()
    for pos, _, module, kind in hits:
        _add_import(imports, seen_imports, module, _line_of(content, pos), kind)

    export_hits = []
    for match in COMMONJS_EXPORT_RULE.finditer(content):
        export_hits.append((match.start(), [match.group(1) or match.group(2)]))
    for match in EXPORT_LIST_RULE.finditer(content):
        names = []
        for item in match.group(1).split(","):
            item = item.strip()
            if item:
                names.append(re.split(r"\s+as\s+", item)[-1].strip())
        export_hits.append((match.start(), names))
    for match in EXPORT_DECL_RULE.finditer(content):
        name = match.group(1)
        export_hits.append((match.start(), [None if name in KEYWORDS else name]))
    export_hits.sort(key=lambda h: h[0])
    exports: list[ExportRecord] = []
    seen_exports: set[str] = set()
    for pos, names in export_hits:
        for name in names:
            _add_export(exports, seen_exports, name, _line_of(content, pos))

    return ExtractionResult(
        functions=tuple(functions),
        classes=tuple(classes),
        imports=tuple(imports),
        exports=tuple(exports),
        call_sites=_count_calls(content, CALL_RULE, declaration_sites),
    )


def _scan_python(content: str) -> ExtractionResult:
    functions, declaration_sites = _collect_functions(content, (PY_FUNCTION_RULE,))

    classes = []
    for match in CLASS_RULE.finditer(content):
        declaration_sites.add(match.start(1))
        body = _indented_body(content, match.start())
        methods = _unique(m.group(1) for m in PY_METHOD_RULE.finditer(body))
        classes.append(ClassRecord(name=match.group(1), line=_line_of(content, match.start()), methods=methods))

    hits = []
    for match in PY_FROM_IMPORT_RULE.finditer(content):
        hits.append((match.start(), [match.group(1)]))
    for match in PY_IMPORT_RULE.finditer(content):
        modules = [re.split(r"\s+as\s+", part.strip())[0] for part in match.group(1).split(",")]
        hits.append((match.start(), modules))
    hits.sort(key=lambda h: h[0])
    imports: list[ImportRecord] = []
    seen_imports: set[str] = set()
    for pos, modules in hits:
        for module in modules:
            _add_import(imports, seen_imports, module, _line_of(content, pos))

    exports: list[ExportRecord] = []
    seen_exports: set[str] = set()
    for match in PY_ALL_RULE.finditer(content):
        for name in re.findall(r"['\"](\w+)['\"]", match.group(1)):
            _add_export(exports, seen_exports, name, _line_of(content, match.start()))

    return ExtractionResult(
        functions=tuple(functions),
        classes=tuple(classes),
        imports=tuple(imports),
        exports=tuple(exports),
        call_sites=_count_calls(content, PY_CALL_RULE, declaration_sites),
    )


def _walk_python_tree(tree: ast.Module) -> ExtractionResult:
    function_nodes = []
    class_nodes = []
    import_hits = []
    exports: list[ExportRecord] = []
    seen_exports: set[str] = set()
    calls = 0

    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            function_nodes.append(node)
        elif isinstance(node, ast.ClassDef):
            class_nodes.append(node)
        elif isinstance(node, ast.Import):
            import_hits.append((node.lineno, node.col_offset, [a.name for a in node.names]))
        elif isinstance(node, ast.ImportFrom):
            import_hits.append((node.lineno, node.col_offset, ["." * node.level + (node.module or "")]))
        elif isinstance(node, ast.Call):
            calls += 1

    for stmt in tree.body:
        if isinstance(stmt, ast.Assign) and any(
            isinstance(t, ast.Name) and t.id == "__all__" for t in stmt.targets
        ) and isinstance(stmt.value, (ast.List, ast.Tuple)):
            for elt in stmt.value.elts:
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str):
                    _add_export(exports, seen_exports, elt.value, stmt.lineno)

    function_nodes.sort(key=lambda n: (n.lineno, n.col_offset))
    seen: set[str] = set()
    functions = []
    for node in function_nodes:
        if node.name in seen:
            continue
        seen.add(node.name)
        functions.append(FunctionRecord(
            name=node.name,
            line=node.lineno,
            is_async=isinstance(node, ast.AsyncFunctionDef),
        ))

    class_nodes.sort(key=lambda n: (n.lineno, n.col_offset))
    classes = [
        ClassRecord(
            name=node.name,
            line=node.lineno,
            methods=tuple(dict.fromkeys(
                child.name for child in node.body
                if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef))
            )),
        )
        for node in class_nodes
    ]

    import_hits.sort(key=lambda h: (h[0], h[1]))
    imports: list[ImportRecord] = []
    seen_imports: set[str] = set()
    for line, _, modules in import_hits:
        for module in modules:
            _add_import(imports, seen_imports, module, line)

    return ExtractionResult(
        functions=tuple(functions),
        classes=tuple(classes),
        imports=tuple(imports),
        exports=tuple(exports),
        call_sites=calls,
    )
