"""Command line for literature maps stored in a local SQLite repository."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .constants import CONCEPT_TYPES, EDGE_TYPES, LAYOUT_MODES
from .exceptions import LitmapError
from .export import export_render_payload
from .models import ConceptNode, NotebookRecord, Project, ProjectNode, ResourceRecord
from .positions import JsonFileCache
from .session import ProjectSession
from .settings import get_data_dir, load_settings
from .store import SqliteGraphRepository

console = Console()
logger = logging.getLogger("litmap")


def _configure_logging(data_dir: Path, settings: dict) -> None:
    """Log to <data dir>/litmap.log at the configured level."""
    if logger.handlers:
        return
    data_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(data_dir / settings["log_file"])
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(file_handler)
    logger.setLevel(settings["log_level"].upper())


def _repo(ctx) -> SqliteGraphRepository:
    repo = SqliteGraphRepository(ctx.obj["data_dir"] / ctx.obj["settings"]["db_file"])
    ctx.call_on_close(repo.close)
    return repo


def _session(ctx, project_id: str) -> ProjectSession:
    settings = ctx.obj["settings"]
    repo = _repo(ctx)
    if repo.get_project(project_id) is None:
        raise click.ClickException(f"Project not found: {project_id}")
    return ProjectSession(
        repo,
        project_id,
        cache=JsonFileCache(ctx.obj["data_dir"] / settings["cache_file"]),
        autoflush=settings["autoflush"],
        default_mode=settings["default_layout_mode"],
    )


def _report_failures(session: ProjectSession) -> None:
    session.flush()
    for note in session.notifications:
        if note.level == "error":
            console.print(f"[yellow]![/yellow] {note.message}")


@click.group()
@click.option(
    "--data-path",
    envvar="LITMAP_PATH",
    type=click.Path(path_type=Path),
    help="Path to data directory (default: ./.litmap)",
)
@click.pass_context
def cli(ctx, data_path):
    """Litmap - literature map knowledge graphs."""
    ctx.ensure_object(dict)
    data_dir = data_path or get_data_dir()
    ctx.obj["data_dir"] = data_dir
    ctx.obj["settings"] = load_settings(data_dir)
    _configure_logging(data_dir, ctx.obj["settings"])


@cli.command()
@click.pass_context
def init(ctx):
    """Create the data directory and database."""
    _repo(ctx)
    console.print(f"[green]✓[/green] Initialized literature map store at {ctx.obj['data_dir']}")


@cli.command("new-project")
@click.argument("title")
@click.option("--paper-type", default="literature_review", help="Kind of paper being written")
@click.option("--theme", default=None, help="Research theme")
@click.option("--hypothesis", default=None, help="Working hypothesis")
@click.option("--with-root", is_flag=True, help="Persist a root node instead of a synthetic one")
@click.pass_context
def new_project(ctx, title, paper_type, theme, hypothesis, with_root):
    """Create a project and print its id."""
    repo = _repo(ctx)
    project = repo.create_project(
        Project(title=title, paper_type=paper_type, theme=theme, hypothesis=hypothesis)
    )
    if with_root:
        repo.insert_node(ProjectNode(
            project_id=project.id,
            title=title,
            content=hypothesis,
            hypothesis=hypothesis,
            paper_type=paper_type,
            theme=theme,
            is_project_root=True,
        ))
    console.print(f"[green]✓[/green] Created project [cyan]{project.id}[/cyan] {title}")


@cli.command()
@click.pass_context
def projects(ctx):
    """List projects."""
    repo = _repo(ctx)
    rows = repo.list_projects()
    if not rows:
        console.print("No projects yet.")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Paper type")
    table.add_column("Mode")
    for project in rows:
        table.add_row(
            project.id,
            project.title,
            project.paper_type,
            repo.get_layout_mode(project.id) or ctx.obj["settings"]["default_layout_mode"],
        )
    console.print(table)


@cli.command("add-notebook")
@click.argument("project_id")
@click.argument("title")
@click.option("--url", default=None, help="Notebook URL")
@click.option("--briefing", default=None, help="Notebook briefing text")
@click.pass_context
def add_notebook(ctx, project_id, title, url, briefing):
    """Register a notebook; it appears in the map as a synthetic node."""
    repo = _repo(ctx)
    notebook = repo.add_notebook(
        NotebookRecord(project_id=project_id, title=title, notebook_url=url, briefing=briefing)
    )
    console.print(f"[green]✓[/green] Added notebook [cyan]{notebook.id}[/cyan] {title}")


@cli.command("add-source")
@click.argument("project_id")
@click.argument("notebook_id")
@click.argument("title")
@click.option("--url", default=None, help="Source URL")
@click.option("--file-type", default=None, help="pdf, web, video, ...")
@click.pass_context
def add_source(ctx, project_id, notebook_id, title, url, file_type):
    """Attach a source to a notebook."""
    repo = _repo(ctx)
    resource = repo.add_resource(ResourceRecord(
        project_id=project_id,
        notebook_id=notebook_id,
        title=title,
        source_url=url,
        file_type=file_type,
    ))
    console.print(f"[green]✓[/green] Added source [cyan]{resource.id}[/cyan] {title}")


@cli.command("add-node")
@click.argument("project_id")
@click.argument("node_type", type=click.Choice(CONCEPT_TYPES))
@click.argument("title")
@click.option("--notebook", "notebook_id", default=None, help="Notebook the concept came from")
@click.option("--content", default=None, help="Details")
@click.option("--source", "concept_source", default=None, help="Where the concept was found")
@click.option("--confidence", type=click.FloatRange(0.0, 1.0), default=1.0)
@click.pass_context
def add_node(ctx, project_id, node_type, title, notebook_id, content, concept_source, confidence):
    """Add an extracted concept, gap, discrepancy, publication or hypothesis."""
    session = _session(ctx, project_id)
    node = session.add_node(ConceptNode(
        type=node_type,
        title=title,
        content=content,
        notebook_id=notebook_id,
        concept_source=concept_source,
        confidence_score=confidence,
        extraction_method="manual",
        size="large" if node_type == "hypothesis" else "medium",
    ))
    console.print(f"[green]✓[/green] Added {node_type} [cyan]{node.id}[/cyan] {title}")
    _report_failures(session)


@cli.command()
@click.argument("project_id")
@click.argument("source_id")
@click.argument("target_id")
@click.argument("edge_type", type=click.Choice(EDGE_TYPES))
@click.option("-a", "--annotation", default=None, help="Free-text note on the connection")
@click.pass_context
def connect(ctx, project_id, source_id, target_id, edge_type, annotation):
    """Draw a typed connection between two nodes."""
    session = _session(ctx, project_id)
    draft = session.on_edge_connect_attempt(source_id, target_id)
    if draft is None:
        console.print(f"[red]Error:[/red] cannot connect {source_id} to {target_id}")
        return
    edge = session.commit_connection(edge_type, annotation)
    console.print(f"[green]✓[/green] {source_id} --{edge.edge_type}--> {target_id}")
    _report_failures(session)


@cli.command()
@click.argument("project_id")
@click.argument("title")
@click.option("-c", "--concept", "concept_ids", multiple=True, required=True, help="Concept id (repeatable)")
@click.option("--content", default=None, help="Insight text")
@click.pass_context
def insight(ctx, project_id, title, concept_ids, content):
    """Create an insight from several concepts."""
    session = _session(ctx, project_id)
    for concept_id in concept_ids:
        if session.on_node_click(concept_id, {"shift"}) == "ignored":
            console.print(f"[yellow]![/yellow] Skipping {concept_id}: not a concept")
    try:
        session.open_insight_draft()
        node = session.save_insight(title, content)
    except LitmapError as e:
        console.print(f"[red]Error:[/red] {e}")
        return
    console.print(f"[green]✓[/green] Created insight [cyan]{node.id}[/cyan] {title}")
    _report_failures(session)


@cli.command()
@click.argument("project_id")
@click.argument("mode", type=click.Choice(LAYOUT_MODES), required=False)
@click.pass_context
def mode(ctx, project_id, mode):
    """Show or set a project's layout mode."""
    session = _session(ctx, project_id)
    if mode is None:
        console.print(f"Layout mode: [cyan]{session.mode}[/cyan]")
        return
    session.set_layout_mode(mode)
    console.print(f"[green]✓[/green] Layout mode set to [cyan]{mode}[/cyan]")
    _report_failures(session)


@cli.command()
@click.argument("project_id")
@click.option("--mode", "layout_mode", type=click.Choice(LAYOUT_MODES), default=None)
@click.pass_context
def layout(ctx, project_id, layout_mode):
    """Show resolved node positions."""
    session = _session(ctx, project_id)
    if layout_mode and layout_mode != session.mode:
        session.set_layout_mode(layout_mode)

    table = Table(title=f"Layout ({session.mode})")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("From", style="dim")
    for placed in session.positioned_nodes():
        table.add_row(
            placed.id,
            placed.node.type,
            placed.node.title,
            f"{placed.position.x:.0f}",
            f"{placed.position.y:.0f}",
            placed.source,
        )
    console.print(table)


@cli.command()
@click.argument("project_id")
@click.argument("node_id")
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_context
def move(ctx, project_id, node_id, x, y):
    """Move a node in the current layout mode."""
    session = _session(ctx, project_id)
    if not session.on_node_drag_end(node_id, {"x": x, "y": y}):
        console.print(f"[red]Error:[/red] node not found: {node_id}")
        return
    channel = session.positions.channel_for(node_id)
    console.print(f"[green]✓[/green] Moved {node_id} to ({x:.0f}, {y:.0f}) via {channel}")
    _report_failures(session)


@cli.command()
@click.argument("project_id")
@click.argument("node_id")
@click.pass_context
def trace(ctx, project_id, node_id):
    """Show every provenance path from a node back to the project root."""
    session = _session(ctx, project_id)
    paths = session.find_paths_to_root(node_id)
    if not paths:
        console.print(f"No paths found for {node_id}.")
        return

    root_id = session.root.id
    for i, labels in enumerate(session.path_labels(paths), 1):
        reaches_root = paths[i - 1][-1] == root_id
        marker = "[green]root[/green]" if reaches_root else "[yellow]orphan[/yellow]"
        console.print(f"{i}. ({marker}) " + " → ".join(labels))


@cli.command()
@click.argument("project_id")
@click.pass_context
def stats(ctx, project_id):
    """Show node counts per type and the connection count."""
    session = _session(ctx, project_id)
    st = session.node_stats()

    table = Table(title="Literature map")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    for node_type, count in sorted(st["nodes"].items()):
        table.add_row(node_type, str(count))
    table.add_row("[bold]connections[/bold]", str(st["connections"]))
    console.print(table)


@cli.command()
@click.argument("project_id")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@click.pass_context
def export(ctx, project_id, output):
    """Export the render payload to JSON."""
    session = _session(ctx, project_id)
    path = export_render_payload(session, ctx.obj["data_dir"], output)
    console.print(f"[green]✓[/green] Exported to {path}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
