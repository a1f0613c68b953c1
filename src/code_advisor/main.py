"""Code Advisor CLI - heuristic code suggestions and AI chat relay.

Usage:
    code-advisor scan app.py
    code-advisor analyze ./my-app --framework erpnext
    code-advisor suggestions --status pending
    code-advisor chat "How do I speed up this report?" --repo-id 1 --file report.py
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from sqlmodel import Session

from . import __version__
from .analysis import analyze_files, collect_files
from .config import load_settings
from .extractor import InvalidInputError, extract_suggestions, summarize
from .model import DEFAULT_PROVIDER, PROVIDERS, ModelError, create_provider
from .models import InvalidTransitionError
from .relay import ChatRelay, RepositoryContext
from .rules import PRIORITY_RANK, RULESETS, SUGGESTION_TYPES, rules_for
from .store import NotFoundError, SuggestionStore, get_engine, init_db

console = Console()

PRIORITY_STYLES = {"low": "dim", "medium": "yellow", "high": "red", "critical": "bold red"}


@contextmanager
def _open_store(database_url: str | None):
    engine = init_db(get_engine(database_url))
    with Session(engine) as session:
        yield SuggestionStore(session)


@click.group()
@click.version_option(version=__version__)
@click.option("--db", "database_url", default=None, help="Database URL (default: CODE_ADVISOR_DATABASE_URL or ~/.code-advisor)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, verbose: bool):
    """Code Advisor - pattern-based code suggestions with an AI chat relay.

    Scan files for risky or low-quality patterns, track the resulting
    suggestions, and chat with DeepSeek, OpenAI, Azure OpenAI or Claude.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or load_settings().database_url


@cli.command()
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--text", "-t", default=None, help="Scan this text instead of a file")
@click.option("--language", "-l", default=None, help="Language hint (python, javascript, typescript, json)")
@click.option("--framework", default=None, help="Framework hint, e.g. frappe")
@click.option("--all-matches", is_flag=True, help="Report every occurrence, not just the first per rule")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
def scan(path: str | None, text: str | None, language: str | None, framework: str | None, all_matches: bool, json_only: bool):
    """Scan a single file or text blob. Nothing is stored.

    Examples:

        code-advisor scan app/api.py

        code-advisor scan --text "eval(data)" --language python
    """
    if path is None and text is None:
        raise click.UsageError("Provide a PATH or --text")
    if text is None:
        text = Path(path).read_text(encoding="utf-8", errors="replace")

    try:
        found = extract_suggestions(
            text,
            language=language,
            framework_hint=framework,
            file_path=path,
            match_all=all_matches,
        )
    except InvalidInputError as e:
        raise click.ClickException(str(e))

    if json_only:
        click.echo(json.dumps([s.to_dict() for s in found], indent=2))
        return
    if not found:
        console.print("[green]No suggestions.[/]")
        return
    _print_suggestions(found, title=path or "text")


@cli.command()
@click.argument("target", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--name", "-n", default=None, help="Repository name (default: directory name)")
@click.option("--framework", "-f", default=None, help="Repository framework: frappe, erpnext, custom")
@click.option("--analysis-type", default="full_scan", help="Label stored on the analysis run")
@click.option("--all-matches", is_flag=True, help="Report every occurrence, not just the first per rule")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
@click.pass_context
def analyze(ctx: click.Context, target: str, name: str | None, framework: str | None, analysis_type: str, all_matches: bool, json_only: bool):
    """Analyze a repository directory and store its suggestions."""
    root = Path(target).resolve()
    files = collect_files(root)

    with _open_store(ctx.obj["database_url"]) as store:
        repo = store.find_repository(str(root))
        if repo is None:
            repo = store.add_repository(
                name=name or root.name, framework=framework, root_path=str(root)
            )
        elif framework and framework != repo.framework:
            repo.framework = framework
            store.session.add(repo)
            store.session.commit()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=json_only,
        ) as progress:
            progress.add_task(f"Scanning {len(files)} files...", total=None)
            run = analyze_files(store, repo, files, analysis_type=analysis_type, match_all=all_matches)

        if json_only:
            click.echo(json.dumps({
                "repository_id": repo.id,
                "analysis_id": run.id,
                "status": run.status,
                "issues_found": run.issues_found,
                "suggestions_count": run.suggestions_count,
                "results": run.results,
            }, indent=2, default=str))
            return

        style = "green" if run.status == "completed" else "red"
        console.print(Panel.fit(
            f"[bold {style}]Analysis {run.status}[/]\n"
            f"Repository: {repo.name} (id {repo.id}) | Files: {len(files)}\n"
            f"Issues: {run.issues_found} | Suggestions: {run.suggestions_count}",
            border_style=style,
            title=f"Run {run.id}",
        ))
        if run.status == "failed":
            raise click.ClickException((run.results or {}).get("error", "analysis failed"))


@cli.command()
@click.option("--repo-id", type=int, default=None, help="Only this repository")
@click.option("--status", type=click.Choice(["pending", "applied", "dismissed"]), default=None)
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
@click.pass_context
def suggestions(ctx: click.Context, repo_id: int | None, status: str | None, json_only: bool):
    """List stored suggestions."""
    with _open_store(ctx.obj["database_url"]) as store:
        rows = store.list_suggestions(repository_id=repo_id, status=status)
        if json_only:
            click.echo(json.dumps([r.model_dump() for r in rows], indent=2, default=str))
            return

        table = Table(show_header=True)
        table.add_column("ID", justify="right")
        table.add_column("File")
        table.add_column("Line", justify="right")
        table.add_column("Type")
        table.add_column("Priority")
        table.add_column("Status")
        table.add_column("Title")
        for r in rows:
            table.add_row(
                str(r.id), escape(r.file_path), str(r.line or ""), r.suggestion_type,
                r.priority, r.status, escape(r.title),
                style=PRIORITY_STYLES.get(r.priority),
            )
        console.print(table)


@cli.command()
@click.argument("suggestion_id", type=int)
@click.pass_context
def apply(ctx: click.Context, suggestion_id: int):
    """Mark a pending suggestion as applied."""
    _transition(ctx, suggestion_id, "apply")


@cli.command()
@click.argument("suggestion_id", type=int)
@click.pass_context
def dismiss(ctx: click.Context, suggestion_id: int):
    """Mark a pending suggestion as dismissed."""
    _transition(ctx, suggestion_id, "dismiss")


def _transition(ctx: click.Context, suggestion_id: int, action: str) -> None:
    with _open_store(ctx.obj["database_url"]) as store:
        try:
            if action == "apply":
                row = store.apply_suggestion(suggestion_id)
            else:
                row = store.dismiss_suggestion(suggestion_id)
        except (NotFoundError, InvalidTransitionError) as e:
            raise click.ClickException(str(e))
        console.print(f"Suggestion {row.id} is now [bold]{row.status}[/]")


@cli.command()
@click.argument("message")
@click.option("--provider", "-p", type=click.Choice(PROVIDERS), default=DEFAULT_PROVIDER, help="Upstream chat provider")
@click.option("--conversation", "-c", "conversation_id", type=int, default=None, help="Continue a conversation")
@click.option("--repo-id", type=int, default=None, help="Repository the question is about")
@click.option("--file", "files", multiple=True, help="Open file (repeatable); the first one receives suggestions")
@click.pass_context
def chat(ctx: click.Context, message: str, provider: str, conversation_id: int | None, repo_id: int | None, files: tuple[str, ...]):
    """Send one chat message and print the reply.

    Each --file that exists on disk is also sent to the model as context.
    """
    context = None
    if repo_id:
        contents = {
            f: Path(f).read_text(encoding="utf-8", errors="replace")
            for f in files
            if Path(f).is_file()
        }
        context = RepositoryContext(repository_id=repo_id, current_files=list(files), file_contents=contents)

    with _open_store(ctx.obj["database_url"]) as store:
        try:
            chat_provider = create_provider(provider)
        except ModelError as e:
            raise click.ClickException(str(e))
        try:
            relay = ChatRelay(chat_provider, store)
            with console.status(f"Waiting for {provider}..."):
                reply = relay.send(message, conversation_id=conversation_id, context=context)
        except (ModelError, NotFoundError) as e:
            raise click.ClickException(str(e))
        finally:
            chat_provider.close()

        console.print(Panel(reply.response, title=f"{provider} | conversation {reply.conversation_id}", border_style="cyan"))
        if reply.suggestions:
            console.print(f"[magenta]Recorded {len(reply.suggestions)} suggestion(s) for {files[0]}[/]")


@cli.command()
@click.option("--language", "-l", default=None, help="Only rules for this language")
def rules(language: str | None):
    """List the built-in rules."""
    if language:
        tables = {language: rules_for(language)}
        if not tables[language]:
            raise click.ClickException(f"No rules for language {language!r}")
    else:
        tables = {lang: table for lang, table in RULESETS.items() if lang != "typescript"}

    for lang, table_rules in tables.items():
        table = Table(title=lang, show_header=True)
        table.add_column("Rule", style="bold")
        table.add_column("Type")
        table.add_column("Priority")
        table.add_column("Applies to")
        table.add_column("Title")
        for r in table_rules:
            scope = r.framework or r.filename or "all"
            table.add_row(r.rule_id, r.category, r.priority, scope, r.title,
                          style=PRIORITY_STYLES.get(r.priority))
        console.print(table)


@cli.command()
def version():
    """Show version information."""
    console.print(f"code-advisor v{__version__}")
    console.print("Pattern-based code suggestions and AI chat relay")


def _print_suggestions(found, title: str) -> None:
    """Print suggestions highest priority first, keeping rule order within a priority."""
    ordered = sorted(found, key=lambda s: -PRIORITY_RANK[s.priority])
    for s in ordered:
        style = PRIORITY_STYLES.get(s.priority, "")
        location = f":{s.line}" if s.line else ""
        console.print(f"[{style}]{s.priority.upper():<8}[/] [cyan]{s.suggestion_type}[/] {escape(title)}{location}  {escape(s.title)}")
        if s.code_snippet:
            console.print(f"          [dim]{escape(s.code_snippet)}[/]")

    counts = summarize(found)
    console.print()
    console.print(", ".join(f"{counts[t]} {t}" for t in SUGGESTION_TYPES if t in counts))


if __name__ == "__main__":
    cli()
