"""
Snapshot Export & Import Commands
----------------------------------

Portable JSON/YAML snapshots of notes, topics, series, inline tag types
and doctrine annotations.

Commands:
    - export: Write a snapshot file
    - import: Merge a snapshot file into the database

Usage:
    # Export everything to JSON
    sacred-db backup export ~/sacred-backup.json

    # Import a YAML snapshot, replacing all existing notes first
    sacred-db backup import ~/sacred-backup.yaml --replace-notes
"""
import click
from pathlib import Path

from sacred.core.logging_manager import handle_cli_error
from sacred.core.exceptions import DatabaseError
from . import get_db


@click.group()
@click.pass_context
def backup(ctx: click.Context) -> None:
    """Export and import snapshots."""
    pass


@backup.command("export")
@click.argument("output_file", type=click.Path(dir_okay=False))
@click.pass_context
def export(ctx, output_file):
    """Export all user data to OUTPUT_FILE (.json, .yaml or .yml)."""
    try:
        click.echo(f"💾 Exporting to {output_file}...")
        db = get_db(ctx)
        with db.session_scope() as session:
            stats = db.export_manager.export_to_file(session, Path(output_file))

        click.echo("✅ Export complete:")
        for kind, count in stats.items():
            click.echo(f"  {kind}: {count}")

    except DatabaseError as e:
        handle_cli_error(
            ctx, e, "backup_export", additional_context={"output_file": output_file}
        )


@backup.command("import")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--replace-notes",
    is_flag=True,
    help="Delete all existing notes before importing",
)
@click.pass_context
def import_(ctx, input_file, replace_notes):
    """Import a snapshot from INPUT_FILE."""
    try:
        click.echo(f"📥 Importing from {input_file}...")
        db = get_db(ctx)
        with db.session_scope() as session:
            if replace_notes:
                removed = db.export_manager.delete_all_notes(session)
                click.echo(f"  Removed {removed} existing note(s)")
            result = db.export_manager.import_from_file(session, Path(input_file))

        click.echo(
            f"✅ Imported: {result.total_inserted} inserted, "
            f"{result.total_updated} updated"
        )
        for kind in result.inserted:
            click.echo(
                f"  {kind}: +{result.inserted[kind]} / ~{result.updated[kind]}"
            )

        if result.errors:
            click.echo(f"\n⚠️  {len(result.errors)} row(s) rejected:")
            for error in result.errors:
                click.echo(f"  • {error.kind} {error.id}: {error.error}")

    except DatabaseError as e:
        handle_cli_error(
            ctx, e, "backup_import", additional_context={"input_file": input_file}
        )
