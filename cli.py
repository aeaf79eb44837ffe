#!/usr/bin/env python3
"""
HQMF Criteria CLI

Command-line interface for extracting data criteria from HQMF R2 measures.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()


def _configure(log_level: Optional[str], json_log: bool) -> None:
    from hqmf.config import get_config
    from hqmf.errors import ConfigurationError
    from hqmf.logging_config import configure_logging

    config = get_config()
    try:
        config.validate()
    except ConfigurationError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    level = logging.getLevelName(log_level.upper()) if log_level else config.level
    configure_logging(level=level, json_mode=json_log or config.log_json)


@click.group()
@click.version_option(version="0.1.0", prog_name="hqmf-criteria")
def cli():
    """
    HQMF Criteria - Data criteria extraction for HQMF R2 measures

    Parse the data criteria section of a quality measure into normalized,
    typed criteria records.
    """
    pass


@cli.command()
@click.argument("measure_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table",
              help="Output format")
@click.option("--output", "-o", type=click.Path(), help="Write JSON output to this file")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level (defaults to HQMF_LOG_LEVEL)")
@click.option("--json-log", is_flag=True, help="Emit log lines as JSON")
def parse(measure_path: str, fmt: str, output: Optional[str], log_level: Optional[str], json_log: bool):
    """
    Parse the data criteria of a measure document.

    Example:

        hqmf-criteria parse ./measure.xml --format json -o ./criteria.json
    """
    from lxml import etree

    from hqmf.errors import DataCriteriaError
    from hqmf.exporters import export_json
    from hqmf.parser import DataCriteriaSession, load_document

    _configure(log_level, json_log)

    try:
        document = load_document(measure_path)
    except etree.XMLSyntaxError as e:
        console.print(f"[red]Could not read {measure_path}: {escape(str(e))}[/red]")
        sys.exit(1)

    try:
        models = DataCriteriaSession().parse_document(document)
    except DataCriteriaError as e:
        location = f" (entry {e.entry_id})" if e.entry_id else ""
        console.print(f"[red]✗ {escape(str(e))}{location}[/red]")
        sys.exit(1)

    if fmt == "json" or output:
        json_str = export_json(models, Path(output) if output else None)
        if output:
            console.print(f"[green]✓ Exported {len(models)} criteria to {output}[/green]")
        else:
            click.echo(json_str)
        return

    table = Table(title=f"Data Criteria ({len(models)})")
    table.add_column("ID", style="cyan")
    table.add_column("Definition")
    table.add_column("Status")
    table.add_column("Occurrence", justify="center")
    table.add_column("Children")

    for model in models:
        table.add_row(
            model.id,
            model.definition or "",
            model.status or "",
            model.specific_occurrence or "",
            ", ".join(model.children_criteria or ()),
        )

    console.print(table)


@cli.command()
def templates():
    """
    List the template identifiers the parser recognises.
    """
    from hqmf.knowledge import get_knowledge

    knowledge = get_knowledge()

    if not knowledge.templates:
        console.print("[yellow]No template table found[/yellow]")
        return

    table = Table(title="Data Criteria Templates")
    table.add_column("Template ID", style="cyan")
    table.add_column("Definition", style="green")
    table.add_column("Status")
    table.add_column("Title")

    for template_id, template in knowledge.templates.items():
        table.add_row(template_id, template.definition, template.status or "", template.title or "")

    console.print(table)


@cli.command()
def info():
    """
    Show information about HQMF Criteria.
    """
    from hqmf.config import get_config
    from hqmf.knowledge import get_knowledge

    config = get_config()
    knowledge = get_knowledge()

    console.print(Panel(
        "[bold]HQMF Criteria[/bold]\n\n"
        "Extracts the data criteria of HQMF R2 quality measures:\n"
        "• Template based classification\n"
        "• Specific occurrence tagging\n"
        "• Variable grouping\n\n"
        "[dim]Population criteria and measure assembly are handled elsewhere.[/dim]",
        title="About",
        border_style="blue",
    ))

    console.print("\n[bold]Knowledge:[/bold]")
    console.print(f"  • Directory: {config.knowledge_dir}")
    console.print(f"  • Templates: {len(knowledge.templates)}")
    console.print(f"  • Value set paths: {len(knowledge.value_set_paths)}")
    console.print(f"  • Field codes: {len(knowledge.value_fields)}")
    console.print(f"  • Code systems: {len(knowledge.code_systems)}")

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  hqmf-criteria parse measure.xml")
    console.print("  hqmf-criteria parse measure.xml --format json -o criteria.json")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
