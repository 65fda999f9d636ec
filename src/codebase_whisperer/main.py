"""Codebase Whisperer CLI - heuristic code analysis with hosted-model Q&A.

Usage:
    whisperer analyze <repo-path-or-url> [options]
    whisperer ask . "Where is authentication handled?"
    whisperer docs https://github.com/expressjs/express --output DOCS.md
    whisperer serve --port 3000
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .analyzer import AnalysisResult, analyze_repo
from .config import ConfigError, Settings, load_settings
from .logging_config import setup_logging
from .model import WatsonxClient
from .repo import RepoError, checkout
from .serve import DEFAULT_HOST, start_server
from .whisperer import CodebaseWhisperer

console = Console()


def _settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))


def _whisperer(settings: Settings) -> CodebaseWhisperer:
    if not settings.use_model:
        return CodebaseWhisperer()
    return CodebaseWhisperer(WatsonxClient.from_settings(settings))


def _run_analysis(target: str, settings: Settings, quiet: bool = False, prefer_ast: bool = False) -> AnalysisResult:
    """Resolve target (cloning if remote) and analyze it."""
    try:
        with checkout(target) as (path, repository):
            if quiet:
                return analyze_repo(
                    path, max_file_bytes=settings.max_file_bytes, prefer_ast=prefer_ast, repository=repository
                )
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Analyzing {repository['name']}...", total=None)
                return analyze_repo(
                    path, max_file_bytes=settings.max_file_bytes, prefer_ast=prefer_ast, repository=repository
                )
    except RepoError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Codebase Whisperer - understand any repository quickly.

    Scans source files with lightweight heuristics (functions, classes,
    imports, architectural patterns) and, when watsonx.ai credentials are
    configured, answers questions and writes documentation with a hosted
    model.
    """
    setup_logging(verbose=verbose)


@cli.command()
@click.argument("target", default=".")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
@click.option("--include-content", is_flag=True, help="Include file contents in JSON output")
@click.option("--review", is_flag=True, help="Add a model-written architecture review")
@click.option("--ast", "prefer_ast", is_flag=True, help="Parse Python files with the ast module instead of regex rules")
def analyze(target: str, json_only: bool, include_content: bool, review: bool, prefer_ast: bool):
    """Analyze a repository and print its structure.

    TARGET can be a local path, GitHub URL, or owner/repo shorthand.

    Examples:

        whisperer analyze .

        whisperer analyze https://github.com/expressjs/express

        whisperer analyze ./my-project --json-only
    """
    settings = _settings()
    analysis = _run_analysis(target, settings, quiet=json_only, prefer_ast=prefer_ast)

    if json_only:
        click.echo(json.dumps(analysis.to_dict(include_content=include_content), indent=2))
        return

    console.print()
    console.print(Panel.fit(
        f"[bold cyan]Codebase Whisperer v{__version__}[/] - {analysis.name}",
        border_style="cyan",
    ))
    _print_analysis_summary(analysis)
    _print_components(analysis)

    if review:
        result = _whisperer(settings).review_architecture(analysis)
        console.print()
        console.print(Panel(Markdown(result.documentation), title="Architecture Review", border_style="magenta"))


@cli.command()
@click.argument("target")
@click.argument("question")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
def ask(target: str, question: str, json_only: bool):
    """Ask a question about a repository.

    Example:

        whisperer ask . "How are requests routed?"
    """
    settings = _settings()
    analysis = _run_analysis(target, settings, quiet=json_only)
    answer = _whisperer(settings).answer_question(question, analysis)

    if json_only:
        click.echo(json.dumps(answer.to_dict(), indent=2))
        return

    style = "red" if answer.error else "green"
    console.print()
    console.print(Panel(
        Markdown(answer.answer),
        title=question,
        subtitle=f"confidence {answer.confidence:.0%} ({answer.source})",
        border_style=style,
    ))

    if answer.related_files:
        table = Table(title="Related Files", border_style="dim")
        table.add_column("Path", style="cyan")
        table.add_column("Relevance", justify="right")
        table.add_column("Functions", justify="right")
        table.add_column("Classes", justify="right")
        for r in answer.related_files:
            table.add_row(r.path, str(r.relevance), str(r.functions), str(r.classes))
        console.print(table)


@cli.command()
@click.argument("target", default=".")
@click.option("--output", "-o", default=None, help="Write markdown to this file instead of the terminal")
def docs(target: str, output: str | None):
    """Generate markdown documentation for a repository."""
    settings = _settings()
    analysis = _run_analysis(target, settings, quiet=bool(output))
    result = _whisperer(settings).generate_documentation(analysis)

    if output:
        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(result.documentation, encoding="utf-8")
        console.print(f"[green]Documentation written to {out}[/]")
    else:
        console.print(Markdown(result.documentation))

    if result.error:
        raise click.ClickException("Documentation generation failed")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", default="", help="Language of the code (default: from extension)")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
def explain(file: Path, language: str, json_only: bool):
    """Explain the code in FILE."""
    settings = _settings()
    code = file.read_text(encoding="utf-8", errors="replace")
    result = _whisperer(settings).explain_code(code, file_path=file.name, language=language)

    if json_only:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(show_header=False, border_style="dim", title=f"Explanation: {file.name}")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Summary", result.summary)
    table.add_row("Complexity", result.complexity)
    if result.dependencies:
        table.add_row("Dependencies", ", ".join(result.dependencies))
    console.print(table)
    console.print(Markdown(result.purpose))
    for s in result.suggestions:
        console.print(f"  - {s}")


@cli.command()
@click.option("--host", default=DEFAULT_HOST, help="Interface to bind")
@click.option("--port", "-p", type=int, default=None, help="Port (default: $PORT or 3000)")
def serve(host: str, port: int | None):
    """Serve the JSON API."""
    settings = _settings()
    port = port or settings.port
    whisperer = _whisperer(settings)

    mode = "watsonx.ai" if whisperer.uses_model else "heuristic only (no watsonx.ai credentials or DEMO_MODE set)"
    console.print(f"[bold cyan]Codebase Whisperer API[/] on http://{host}:{port}/api/")
    console.print(f"Answers: {mode}", style="dim")
    start_server(whisperer, host=host, port=port, max_file_bytes=settings.max_file_bytes)


@cli.command()
def version():
    """Show version information."""
    console.print(f"codebase-whisperer v{__version__}")
    console.print("Heuristic codebase analysis with watsonx.ai Q&A")


def _print_analysis_summary(analysis: AnalysisResult) -> None:
    """Print a compact summary of the heuristic analysis."""
    table = Table(title="Repository Analysis", show_header=False, border_style="dim")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Name", analysis.name)
    m = analysis.metrics
    if m is None:
        table.add_row("Files", "0")
        console.print(table)
        return

    table.add_row("Files / Lines", f"{m.total_files:,} / {m.total_lines:,}")
    table.add_row("Functions / Classes", f"{m.total_functions:,} / {m.total_classes:,}")
    table.add_row("Avg complexity", f"{m.avg_complexity}")
    if m.languages:
        table.add_row("Extensions", ", ".join(ext for ext in m.languages[:8] if ext))

    insight = analysis.insights
    if insight:
        table.add_row("Style", insight.architectural_style)
        if insight.frameworks:
            table.add_row("Frameworks", ", ".join(insight.frameworks[:8]))
        if insight.patterns:
            table.add_row("Patterns", ", ".join(insight.patterns))

    graph = analysis.dependencies
    table.add_row("Internal imports", f"{len(graph.edges)} edges between {len(graph.nodes)} files")
    console.print(table)


def _print_components(analysis: AnalysisResult) -> None:
    insight = analysis.insights
    if not insight or not insight.components:
        return

    tree = Tree("[bold]Components[/]")
    for c in insight.components:
        branch = tree.add(f"{c.name} [dim]({c.responsibility})[/]")
        for name in c.files[:5]:
            branch.add(name)
        if len(c.files) > 5:
            branch.add(f"[dim]... {len(c.files) - 5} more[/]")
    console.print(tree)

    if insight.recommendations:
        console.print()
        console.print("[bold]Recommendations:[/]")
        for r in insight.recommendations:
            console.print(f"  - {r}")


if __name__ == "__main__":
    cli()
