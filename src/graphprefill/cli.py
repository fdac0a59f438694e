from pathlib import Path
import json
import typer
from rich import print as rprint
from rich.panel import Panel
from rich.table import Table
from typing import List, Optional

from .catalog import find_option, option_for_ref, sources_for
from .config import PrefillSettings, load_settings
from .errors import PrefillError
from .index import GraphIndex
from .logging import configure_logging
from .session import PrefillSession
from .transport import FileGraphTransport, load_snapshot
from .visualize import ascii_ancestors, ascii_plan

app = typer.Typer(no_args_is_help=True, help="graphprefill CLI — resolve form prefills across a workflow graph")

SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="YAML settings (global_context, auto_prefill, ...).")


def _setup(settings_path: Optional[Path]) -> PrefillSettings:
    settings = load_settings(settings_path)
    configure_logging(json_output=settings.json_logs, level=settings.log_level)
    return settings


def _fail(e: Exception):
    rprint(f"[bold red]Error:[/] {e}")
    raise typer.Exit(code=1)


def _show(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


@app.command()
def validate(file: Path, settings: Optional[Path] = SETTINGS_OPTION):
    """Check a graph file for dangling edges, missing forms and cycles."""
    try:
        _setup(settings)
        index = GraphIndex.build(load_snapshot(file))
    except PrefillError as e:
        _fail(e)
    ok, messages = index.report()
    table = Table(title="Validation Report", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, m)
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(file: Path, node: Optional[str] = typer.Argument(None, help="Show the upstream chain of this node."),
            settings: Optional[Path] = SETTINGS_OPTION):
    """Print an ASCII plan of the graph, or the upstream chain of one node."""
    try:
        _setup(settings)
        index = GraphIndex.build(load_snapshot(file))
        print(ascii_ancestors(index, node) if node else ascii_plan(index))
    except PrefillError as e:
        _fail(e)


@app.command()
def sources(file: Path, node: str, settings: Optional[Path] = SETTINGS_OPTION):
    """List every source a field of NODE can be prefilled from."""
    try:
        cfg = _setup(settings)
        index = GraphIndex.build(load_snapshot(file))
        index.node(node)
    except PrefillError as e:
        _fail(e)
    table = Table(title=f"Prefill sources for {index.node(node).label}", show_lines=False)
    table.add_column("Group", style="bold")
    table.add_column("Field")
    table.add_column("Reference", style="cyan")
    count = 0
    for group in sources_for(node, index, cfg.frozen_context()):
        for opt in group.options:
            table.add_row(group.label, opt.field_label, opt.label)
            count += 1
    rprint(table)
    rprint(f"This form can be prefilled by {count} source fields.")


@app.command()
def prefill(file: Path, node: str,
            settings: Optional[Path] = SETTINGS_OPTION,
            mapping: List[str] = typer.Option([], "--map", "-m", help="FIELD=SOURCE, e.g. email='Form A.email' or id=Global.userId"),
            auto: Optional[bool] = typer.Option(None, "--auto/--no-auto", help="Toggle same-name auto prefill for NODE."),
            write: bool = typer.Option(False, "--write", help="Persist resolved values back into FILE.")):
    """Resolve the prefilled values of NODE's fields."""
    try:
        cfg = _setup(settings)
        session = PrefillSession(FileGraphTransport(file, dry_run=not write), cfg)
        for item in mapping:
            field_key, sep, ref_text = item.partition("=")
            if not sep:
                raise typer.BadParameter(f"'{item}' is not FIELD=SOURCE", param_hint="--map")
            option = find_option(session.list_sources(node), ref_text)
            session.set_mapping(node, field_key, option.ref)
        if auto is not None:
            session.set_auto_prefill(node, auto)
        results = session.focus(node)
    except PrefillError as e:
        _fail(e)

    index = session.engine.index
    if not results:
        rprint(Panel.fit(f"No form data available for node [bold]{node}[/]."))
        return
    table = Table(title=f"Prefill for {index.node(node).label}", show_lines=True)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_column("Prefilled from", style="cyan")
    table.add_column("Mapping")
    for key, res in results.items():
        m = session.engine.store.get(node, key)
        option = option_for_ref(index, res.source) if res.source is not None else None
        table.add_row(key, _show(res.value), option.label if option else "", m.origin.value if m else "")
    rprint(table)
    verb = "Wrote" if write else "Would write"
    rprint(Panel.fit(f"{verb} [bold]{len(session.writes)}[/] field value(s) to [cyan]{file}[/]"))


if __name__ == "__main__":
    app()
