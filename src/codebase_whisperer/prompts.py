"""Prompt templates for codebase Q&A, documentation and code explanation.

Each template takes the heuristic analysis and renders a focused,
structured prompt for the hosted model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .source import SourceFile

if TYPE_CHECKING:
    from .analyzer import AnalysisResult
    from .graph import DependencyGraph

SYSTEM_PROMPT = """You are a senior software engineer and codebase assistant.
You have the complete heuristic analysis of this codebase: file paths,
functions, classes, imports and content previews.
Give detailed, specific answers that reference real files and functions.
If the provided context does not cover the question, say so honestly."""

MAX_FUNCTIONS = 8
MAX_CLASSES = 5
MAX_IMPORTS = 8
MAX_LINKED_FILES = 5
PREVIEW_IMPORTANT = 1500
PREVIEW_DEFAULT = 600
TRUNCATED_MARKER = "...[TRUNCATED]"

IMPORTANT_NAME_HINTS = ("readme", "main", "index", "config")
CODE_EXTENSIONS = ("js", "py", "ts", "jsx", "tsx")
DOC_EXTENSIONS = ("md", "txt")

DOCUMENTATION_REQUEST = """DOCUMENTATION GENERATION REQUEST:

Create comprehensive, professional documentation for this repository including:

1. **PROJECT OVERVIEW**
   - What this project does
   - Key features and capabilities
   - Target audience/use cases

2. **ARCHITECTURE & STRUCTURE**
   - Overall architecture pattern
   - Directory structure explanation
   - Key components and their roles
   - Data flow and interactions

3. **TECHNICAL DETAILS**
   - Programming languages and frameworks used
   - Dependencies and external libraries
   - Configuration files and their purposes

4. **API DOCUMENTATION** (if applicable)
   - Endpoints and their functions
   - Request/response formats
   - Authentication mechanisms

5. **SETUP & INSTALLATION**
   - Prerequisites
   - Installation steps
   - Environment variables

6. **USAGE EXAMPLES**
   - Common use cases
   - Code examples

7. **FILE STRUCTURE GUIDE**
   - Purpose of each major file/directory
   - How files interact with each other

8. **DEVELOPMENT GUIDE**
   - Coding standards
   - Testing procedures
   - Deployment process

Generate markdown-formatted documentation that helps both developers and users
understand and work with this codebase."""


def preview_limit(f: SourceFile) -> int:
    """README/main/index/config and markdown files get a longer preview."""
    name = f.name.lower()
    if f.extension == "md" or any(hint in name for hint in IMPORTANT_NAME_HINTS):
        return PREVIEW_IMPORTANT
    return PREVIEW_DEFAULT


def file_context(f: SourceFile, graph: DependencyGraph | None = None) -> str:
    """One file block: path, type, size, symbols, internal links and a content preview."""
    lines = [
        "=" * 40,
        f"PATH: {f.relative_path}",
        f"TYPE: {f.extension or 'unknown'} file",
        f"SIZE: {f.size} bytes ({f.line_count} lines)",
    ]
    analysis = f.analysis
    if analysis.functions:
        lines.append(f"FUNCTIONS: {', '.join(analysis.function_names[:MAX_FUNCTIONS])}")
    if analysis.classes:
        lines.append(f"CLASSES: {', '.join(analysis.class_names[:MAX_CLASSES])}")
    if analysis.imports:
        lines.append(f"IMPORTS: {', '.join(analysis.import_modules[:MAX_IMPORTS])}")
    if graph is not None:
        uses = graph.dependencies_of(f.relative_path)
        used_by = graph.dependents_of(f.relative_path)
        if uses:
            lines.append(f"DEPENDS ON: {', '.join(uses[:MAX_LINKED_FILES])}")
        if used_by:
            lines.append(f"USED BY: {', '.join(used_by[:MAX_LINKED_FILES])}")

    if f.content:
        limit = preview_limit(f)
        preview = f.content[:limit]
        if len(f.content) > limit:
            preview += f"\n{TRUNCATED_MARKER}"
        lines.append(f"CONTENT:\n{preview}")
    else:
        lines.append("CONTENT: [Empty]")
    return "\n".join(lines)


def repository_context(analysis: AnalysisResult) -> str:
    repo = analysis.repository
    m = analysis.metrics
    languages = ", ".join(m.languages) if m and m.languages else "Multiple"
    kind = {"github": "GitHub Repository", "upload": "Local Upload", "local": "Local Directory"}.get(
        repo.get("type", ""), "Repository"
    )
    lines = [
        "REPOSITORY INFORMATION:",
        f"- Name: {analysis.name}",
        f"- Type: {kind}",
    ]
    if repo.get("url"):
        lines.append(f"- URL: {repo['url']}")
    lines += [
        f"- Languages: {languages}",
        f"- Files: {m.total_files if m else 0} files analyzed",
        f"- Functions: {m.total_functions if m else 0}",
        f"- Classes: {m.total_classes if m else 0}",
        f"- Lines of Code: {m.total_lines if m else 0}",
    ]
    return "\n".join(lines)


def file_overview(files: Sequence[SourceFile]) -> str:
    types = [ext for ext in dict.fromkeys(f.extension for f in files) if ext]
    return f"""FILE OVERVIEW:
- Total Files: {len(files)}
- File Types: {', '.join(types) or 'none'}
- Main Code Files: {sum(1 for f in files if f.extension in CODE_EXTENSIONS)}
- Documentation Files: {sum(1 for f in files if f.extension in DOC_EXTENSIONS)}"""


def _codebase_block(analysis: AnalysisResult) -> str:
    files = "\n".join(file_context(f, analysis.dependencies) for f in analysis.files)
    return f"""{repository_context(analysis)}

{file_overview(analysis.files)}

ANALYSIS SUMMARY:
{analysis.summary_for_prompt()}

DETAILED CODEBASE CONTEXT:
{files}"""


def question_prompt(question: str, analysis: AnalysisResult) -> str:
    """Generate prompt for a free-form question about the codebase."""
    return f"""{_codebase_block(analysis)}

USER QUESTION: "{question}"

How to respond:
- Answer naturally, like a helpful colleague
- For code questions: reference specific files, functions and patterns you see
- For general questions: answer normally without forcing code references
- Be practical and actionable
- If you don't see relevant code for the question, say so honestly

Answer the question:"""


def documentation_prompt(analysis: AnalysisResult) -> str:
    """Generate prompt for full-repository documentation."""
    return f"""{_codebase_block(analysis)}

{DOCUMENTATION_REQUEST}"""


def explanation_prompt(code: str, file_path: str = "", language: str = "") -> str:
    """Generate prompt for explaining one code segment."""
    language = language or "javascript"
    return f"""Explain this code segment like a senior developer mentor.

CODE CONTEXT:
File: {file_path or 'Unknown'}
Language: {language}

CODE:
```{language.lower()}
{code}
```

Provide a clear explanation including:
1. What this code does (purpose)
2. How it works (mechanism)
3. Parameters and return values
4. Dependencies and relationships
5. Complexity assessment (Low, Medium or High)
6. Potential improvements

Start with a one-line summary, then use markdown headings for each section."""


def architecture_prompt(analysis: AnalysisResult) -> str:
    """Generate prompt for an architectural review."""
    m = analysis.metrics
    structure = "\n".join(
        f"{f.relative_path} ({len(f.analysis.functions)} functions, {len(f.analysis.classes)} classes)"
        for f in analysis.files[:20]
    )
    return f"""Analyze this codebase architecture and provide insights as a senior architect.

CODEBASE OVERVIEW:
- {m.total_files if m else 0} files across {len(m.languages) if m else 0} languages
- {m.total_functions if m else 0} functions, {m.total_classes if m else 0} classes
- Average complexity: {m.avg_complexity if m else 0}

HEURISTIC ANALYSIS:
{analysis.summary_for_prompt()}

FILE STRUCTURE:
{structure}

DEPENDENCY GRAPH:
- {len(analysis.dependencies.nodes)} components
- {len(analysis.dependencies.edges)} dependencies

Analyze and describe:
1. Primary architectural style/pattern
2. Key components and their responsibilities
3. Data flow patterns
4. Code organization quality
5. Potential improvements

Keep it under 600 words."""
