#!/usr/bin/env python3
"""
Command-line interface for livingdocs.
"""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from .ai import AIAssistant
from .config import Config
from .documentation import DocStatus, DocumentationGenerator, ExportFormat
from .exceptions import LivingDocsError
from .repository import RepositoryAnalyzer
from .service import DocsWorkspace
from .specs import BusinessSpecStore, ChangeSpecAnalyzer, SpecStatus
from .storage import DocumentationStore, SearchIndexer, VersionStore
from .utils import set_log_level

console = Console()


def _storage(config: Config):
    settings = config.config
    return DocumentationStore(settings.storage.resolved_path(), team_id=settings.project.team_id)


def _spec_store(config: Config) -> BusinessSpecStore:
    settings = config.config
    return BusinessSpecStore(settings.storage.resolved_path(), team_id=settings.project.team_id)


def _fail(ctx, message: str):
    console.print(f"[red]Error:[/red] {message}")
    ctx.exit(1)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Config file path')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Quiet output')
@click.pass_context
def cli(ctx, config, verbose, quiet):
    """livingdocs - documentation that keeps up with your code 📚"""
    ctx.ensure_object(dict)
    try:
        ctx.obj['config'] = Config(config)
    except LivingDocsError as e:
        _fail(ctx, str(e))

    if verbose:
        set_log_level('DEBUG')
    elif quiet:
        set_log_level('ERROR')
    else:
        set_log_level(ctx.obj['config'].config.logging.level)


@cli.command()
@click.option('--name', '-n', help='Project name')
@click.option('--team', '-t', help='Team id used to scope documentation')
@click.option('--force', '-f', is_flag=True, help='Overwrite an existing configuration')
@click.pass_context
def init(ctx, name, team, force):
    """Create a .livingdocs.yaml in the current directory."""
    config_path = Path('.livingdocs.yaml')
    if config_path.exists() and not force:
        console.print("[yellow]⚠[/yellow] Configuration file already exists. Use --force to overwrite.")
        return

    config = ctx.obj['config']
    if name:
        config.set('project.name', name)
    if team:
        config.set('project.team_id', team)

    saved = config.save(str(config_path))
    console.print(f"[green]✓[/green] Created {saved}")
    console.print(f"  AI provider: {config.config.ai.provider} ({config.config.ai.model})")
    console.print(f"  Database: {config.config.storage.resolved_path()}")


@cli.command()
@click.argument('path', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('--repo-id', help='Repository id (defaults to the directory name)')
@click.option('--sections', '-s', multiple=True, help='Regenerate only these section ids of the latest version')
@click.option('--output', '-o', type=click.Path(), help='Also export the result to this file')
@click.option('--format', '-f', 'export_format', type=click.Choice([f.value for f in ExportFormat]),
              default='markdown', help='Export format for --output')
@click.pass_context
def generate(ctx, path, repo_id, sections, output, export_format):
    """Generate documentation for the repository at PATH."""
    config = ctx.obj['config']

    try:
        with console.status("[bold green]Analyzing repository..."):
            analysis = RepositoryAnalyzer(path, repository_id=repo_id).analyze()
        repository = analysis.repository

        versions = VersionStore(_storage(config))
        generator = DocumentationGenerator(
            AIAssistant(config),
            store=versions,
            staleness_days=config.config.generation.staleness_days,
        )
        workspace = DocsWorkspace(generator, versions)

        if sections:
            existing = versions.latest_documentation(repository.id)
            if existing is None:
                _fail(ctx, f"No documentation for {repository.id} yet; run without --sections first")
            versions.store.save_repository(repository)
            with console.status(f"[bold green]Regenerating {', '.join(sections)}..."):
                documentation = asyncio.run(generator.update_documentation(
                    existing, repository, analysis, list(sections)
                ))
        else:
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                console=console,
            ) as progress:
                task = progress.add_task("Starting...", total=100)

                def on_progress(update):
                    progress.update(task, completed=update.progress, description=update.message)

                documentation = asyncio.run(workspace.generate(repository, analysis, on_progress))
    except LivingDocsError as e:
        _fail(ctx, str(e))
        return

    if documentation.status == DocStatus.ERROR:
        _fail(ctx, f"Documentation generation failed: {documentation.error}")
        return

    table = Table(title=f"Documentation for {repository.name}")
    table.add_column("Section", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Words", justify="right")
    for section in documentation.sections:
        table.add_row(section.title, section.type_name, str(section.word_count))
    console.print(table)

    if output:
        Path(output).write_text(generator.export_documentation(documentation, export_format), encoding='utf-8')
        console.print(f"[green]✓[/green] Exported to {output}")


@cli.command()
@click.argument('repo_id')
@click.option('--format', '-f', 'export_format', type=click.Choice([f.value for f in ExportFormat]),
              default='markdown', help='Export format')
@click.option('--output', '-o', type=click.Path(), help='Output file (stdout when omitted)')
@click.option('--version', 'version_id', help='Export a specific version id instead of the latest')
@click.pass_context
def export(ctx, repo_id, export_format, output, version_id):
    """Export the documentation of REPO_ID."""
    config = ctx.obj['config']
    versions = VersionStore(_storage(config))

    try:
        if version_id:
            documentation = versions.get_version(version_id).to_documentation()
        else:
            documentation = versions.latest_documentation(repo_id)
    except LivingDocsError as e:
        _fail(ctx, str(e))
        return

    if documentation is None:
        _fail(ctx, f"No documentation found for {repo_id}")
        return

    # Exporting never calls the AI service.
    rendered = DocumentationGenerator(ai_service=None).export_documentation(documentation, export_format)
    if output:
        Path(output).write_text(rendered, encoding='utf-8')
        console.print(f"[green]✓[/green] Exported {repo_id} to {output}")
    else:
        click.echo(rendered)


@cli.command()
@click.argument('repo_id')
@click.pass_context
def versions(ctx, repo_id):
    """Show the version history of REPO_ID."""
    history = VersionStore(_storage(ctx.obj['config'])).version_history(repo_id)
    if not history:
        console.print(f"[yellow]No versions found for {repo_id}[/yellow]")
        return

    table = Table(title=f"Versions of {repo_id}")
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Id")
    table.add_column("Created", style="green")
    table.add_column("Status")
    table.add_column("Sections", justify="right")
    table.add_column("Change")
    for version in history:
        table.add_row(
            str(version.version),
            version.id,
            version.created_at.strftime("%Y-%m-%d %H:%M"),
            version.status.value,
            str(len(version.sections)),
            version.change_log or "",
        )
    console.print(table)


@cli.command()
@click.argument('query')
@click.option('--team', '-t', help='Team id to search (defaults to the configured team)')
@click.pass_context
def search(ctx, query, team):
    """Search the latest documentation of every repository."""
    config = ctx.obj['config']
    indexer = SearchIndexer(_storage(config), limit=config.config.generation.search_limit)
    results = indexer.search(query, team_id=team)

    if not results:
        console.print(f"[yellow]No documentation matches '{query}'[/yellow]")
        return

    for result in results:
        console.print(
            f"[bold cyan]{result.title}[/bold cyan] "
            f"[dim]({result.repository_name or 'unknown'}, v{result.version}, "
            f"{result.last_updated.strftime('%Y-%m-%d')})[/dim]"
        )
        if result.excerpt:
            console.print(f"  {result.excerpt}")


@cli.command('analyze-change')
@click.argument('old', type=click.File('r'))
@click.argument('new', type=click.File('r'))
@click.option('--section', '-s', required=True, help='Title of the edited section')
@click.option('--repo-id', help='Repository the spec belongs to')
@click.option('--tag', 'tags', multiple=True, help='Extra tags for the created spec')
@click.option('--dry-run', is_flag=True, help='Analyze without storing a spec')
@click.pass_context
def analyze_change(ctx, old, new, section, repo_id, tags, dry_run):
    """Derive a business spec from an edit of a documentation section."""
    config = ctx.obj['config']
    analyzer = ChangeSpecAnalyzer(
        AIAssistant(config),
        spec_store=None if dry_run else _spec_store(config),
    )

    try:
        with console.status("[bold green]Analyzing changes..."):
            spec = asyncio.run(analyzer.process_change(
                old.read(), new.read(), section, tags=tags, repository_id=repo_id
            ))
    except LivingDocsError as e:
        _fail(ctx, str(e))
        return

    if spec is None:
        console.print("[yellow]No significant changes detected; no spec created.[/yellow]")
        return

    verb = "Derived" if dry_run else "Created"
    console.print(f"[green]✓[/green] {verb} spec [bold]{spec.title}[/bold] ({spec.priority.value})")
    console.print(spec.description)
    for criterion in spec.acceptance_criteria:
        console.print(f"  • {criterion}")


@cli.command()
@click.option('--status', type=click.Choice([s.value for s in SpecStatus]), help='Filter by status')
@click.pass_context
def specs(ctx, status):
    """List business specs derived from documentation changes."""
    found = _spec_store(ctx.obj['config']).list_specs(SpecStatus(status) if status else None)
    if not found:
        console.print("[yellow]No business specs found[/yellow]")
        return

    table = Table(title="Business specs")
    table.add_column("Title", style="cyan")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Repository")
    table.add_column("Tags", style="dim")
    for spec in found:
        table.add_row(spec.title, spec.priority.value, spec.status.value,
                      spec.repository_id or "", ", ".join(spec.tags))
    console.print(table)


@cli.command()
@click.argument('repo_id')
@click.option('--path', type=click.Path(exists=True, file_okay=False),
              help='Working tree to compare against (uses the stored repository otherwise)')
@click.pass_context
def status(ctx, repo_id, path):
    """Check whether the documentation of REPO_ID needs an update."""
    config = ctx.obj['config']
    store = _storage(config)
    documentation = VersionStore(store).latest_documentation(repo_id)
    if documentation is None:
        _fail(ctx, f"No documentation found for {repo_id}")
        return

    try:
        if path:
            repository = RepositoryAnalyzer(path, repository_id=repo_id).analyze().repository
        else:
            repository = store.get_repository(repo_id)
    except LivingDocsError as e:
        _fail(ctx, str(e))
        return

    if repository is None:
        _fail(ctx, f"Unknown repository {repo_id}")
        return

    generator = DocumentationGenerator(
        ai_service=None,
        staleness_days=config.config.generation.staleness_days,
    )
    console.print(f"Last updated: {documentation.last_updated.strftime('%Y-%m-%d %H:%M')}")
    if generator.needs_update(documentation, repository):
        console.print(f"[yellow]⚠[/yellow] Documentation for {repo_id} needs an update")
    else:
        console.print(f"[green]✓[/green] Documentation for {repo_id} is up to date")


def main():
    """Main entry point."""
    try:
        cli(obj={})
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
