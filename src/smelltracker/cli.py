"""Command-line interface for smelltracker."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from smelltracker.analysis import MultiProjectAnalysis, ProjectAnalysis
from smelltracker.extraction import GitExtractor
from smelltracker.history import BranchReconstructor
from smelltracker.log import configure_logging
from smelltracker.models import RepositoryConfig, Settings, SmellCategory
from smelltracker.storage import DatabaseConfig, EventQueries, SQLitePersistence

app = typer.Typer(
    name="smelltracker",
    help="Smell evolution tracking - replay a project's history and record code smell lifecycles",
    add_completion=False,
)
console = Console()


def _settings(verbose: bool = False, **overrides) -> Settings:
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging("DEBUG" if verbose else settings.log_level)
    return settings


def _db_config(db_path: Optional[Path]) -> DatabaseConfig:
    return DatabaseConfig(path=db_path) if db_path else DatabaseConfig()


@app.command("init-db")
def init_db(
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database file"),
) -> None:
    """Create the event database schema."""
    try:
        _settings()
        db_config = _db_config(db_path)
        with SQLitePersistence(db_config) as persistence:
            persistence.initialize()
        console.print(f"[bold green]✓[/bold green] Initialized database at {db_config.path}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def analyze(
    name: str = typer.Argument(..., help="Project name"),
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    smells_path: Path = typer.Argument(..., help="Smell export (CSV file or directory)"),
    url: Optional[str] = typer.Option(None, "--url", help="Remote URL recorded with the project"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database file"),
    all_refs: Optional[bool] = typer.Option(None, "--all-refs/--head-only", help="Walk every ref or HEAD only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Analyse the smell history of a single project."""
    try:
        settings = _settings(verbose, all_refs=all_refs)
        db_config = _db_config(db_path)

        console.print(f"[bold green]Analyzing project:[/bold green] {name}")
        console.print(f"[bold blue]Repository:[/bold blue] {repo_path}")

        with SQLitePersistence(db_config) as persistence, Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            persistence.initialize()
            task = progress.add_task("Walking commits...", total=None)

            def on_commit(walked: int, total: int) -> None:
                progress.update(task, completed=walked, total=total)

            result = ProjectAnalysis(
                name=name,
                repo_path=repo_path,
                smells_path=smells_path,
                persistence=persistence,
                settings=settings,
                url=url,
                progress_callback=on_commit,
            ).analyze()

        stats = result.stats
        console.print(
            f"\n[bold green]✓[/bold green] Analyzed {result.commits_processed} commits "
            f"on {result.branches} branches"
        )
        console.print(f"  Smells: {stats.smells}")
        console.print(f"  Introductions: {stats.introductions}")
        console.print(f"  Refactorings: {stats.refactorings}")
        console.print(f"  Renamed: {stats.renames}")
        if stats.rejected:
            console.print(f"  [yellow]Skipped malformed occurrences: {stats.rejected}[/yellow]")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def batch(
    apps_file: Path = typer.Argument(..., help="CSV of projects (name[,remote_url])"),
    smells_dir: Path = typer.Option(..., "--smells-dir", "-s", help="Smell exports, as <dir>/<project>"),
    repos_dir: Optional[Path] = typer.Option(
        None, "--repos-dir", "-r", help="Local repositories, as <dir>/<project> (cloned when omitted)"
    ),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Projects analysed in parallel"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Analyse several projects concurrently."""
    try:
        settings = _settings(verbose, threads=threads)
        analysis = MultiProjectAnalysis.from_file(
            apps_file,
            smells_dir,
            repos_dir=repos_dir,
            settings=settings,
            db_config=_db_config(db_path),
        )

        console.print(
            f"[bold green]Analyzing {len(analysis.apps)} projects[/bold green] "
            f"with {settings.threads} threads"
        )
        results = analysis.analyze()

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Project", style="cyan")
        table.add_column("Status")
        table.add_column("Commits", justify="right", style="yellow")
        table.add_column("Smells", justify="right", style="yellow")
        table.add_column("Error", style="red")

        for app_entry in analysis.apps:
            result = results.get(app_entry.name)
            if result is None:
                table.add_row(app_entry.name, "[yellow]timed out[/yellow]", "", "", "")
            elif result.success:
                table.add_row(
                    app_entry.name,
                    "[green]ok[/green]",
                    str(result.commits_processed),
                    str(result.stats.smells),
                    "",
                )
            else:
                table.add_row(app_entry.name, "[red]failed[/red]", "", "", (result.error or "")[:60])

        console.print(table)

        if any(result is None or not result.success for result in (results.get(a.name) for a in analysis.apps)):
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def branches(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    all_refs: bool = typer.Option(False, "--all-refs", help="Include every ref, not only HEAD"),
) -> None:
    """Show the branches reconstructed from a repository's history."""
    try:
        _settings()
        extractor = GitExtractor(RepositoryConfig(repo_path=repo_path, all_refs=all_refs))
        history = BranchReconstructor().reconstruct(extractor.list_commits())

        console.print(f"[bold green]Branches of:[/bold green] {repo_path}\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Branch", justify="right", style="cyan")
        table.add_column("Lineage", justify="right", style="cyan")
        table.add_column("Commits", justify="right", style="yellow")
        table.add_column("Forked from", style="blue")
        table.add_column("Merged into", style="green")
        table.add_column("Head", style="white")

        for branch in history.branches:
            head = branch.head()
            table.add_row(
                str(branch.ordinal),
                str(history.ancestry.find(branch.ordinal)),
                str(len(branch)),
                branch.parent_commit.short_sha if branch.parent_commit else "-",
                branch.merged_into.short_sha if branch.merged_into else "-",
                f"{head.short_sha} {head.message_summary[:50]}" if head else "",
            )

        console.print(table)
        console.print(f"\n{len(history)} commits on {len(history.branches)} branches")
        for lineage, root in zip(history.lineages(), history.ancestry.roots()):
            console.print(f"Lineage {root}: {len(lineage)} commits")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    name: str = typer.Argument(..., help="Project name"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database file"),
) -> None:
    """Show what the database holds for a project."""
    try:
        _settings()
        with SQLitePersistence(_db_config(db_path)) as persistence:
            project_id = EventQueries.project_id(persistence, name)
            if project_id is None:
                console.print(f"[yellow]Project {name} has not been analyzed yet[/yellow]")
                raise typer.Exit(1)

            queries = EventQueries(persistence, project_id)
            console.print(f"\n[bold]Project {name}[/bold]")
            console.print(f"[cyan]Commits:[/cyan] {queries.commit_count()}")
            console.print(f"[cyan]Last commit:[/cyan] {queries.last_commit_sha()}")
            console.print(f"[cyan]Smells:[/cyan] {queries.smell_count()}")
            for category in SmellCategory:
                console.print(f"[cyan]{category.value.capitalize()} events:[/cyan] {len(queries.events(category))}")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from smelltracker import __version__

    console.print(f"[bold]smelltracker[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
