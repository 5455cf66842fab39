"""
Doctrine Cross-Reference Commands
----------------------------------

Look up doctrine entries by passage and notes by doctrine.

Commands:
    - passage: Doctrine entries indexed against a passage
    - notes: Notes linking to a doctrine entry
    - suggest: Topics proposed for a passage
    - links: Primary doctrines a note does not link yet

Usage:
    sacred-db doctrine passage Romans 3 --verse 24
    sacred-db doctrine notes Ch36
    sacred-db doctrine suggest ROM 3
    sacred-db doctrine links <note-id> --apply
"""
import click

from sacred.core.logging_manager import handle_cli_error
from sacred.core.exceptions import DatabaseError, ValidationError
from sacred.scripture import resolve_book_code
from . import get_db


def _book_code(book: str) -> str:
    code = resolve_book_code(book)
    if code is None:
        raise click.BadParameter(f"Unknown book: {book}", param_hint="BOOK")
    return code


@click.group()
@click.pass_context
def doctrine(ctx: click.Context) -> None:
    """Query the doctrine <-> Scripture cross-reference."""
    pass


@doctrine.command("passage")
@click.argument("book")
@click.argument("chapter", type=int)
@click.option("--verse", type=int, default=None, help="Restrict to one verse")
@click.pass_context
def passage(ctx, book, chapter, verse):
    """List doctrine entries for BOOK CHAPTER."""
    code = _book_code(book)
    try:
        db = get_db(ctx)
        with db.session_scope():
            matches = db.systematic.doctrines_for_passage(code, chapter, verse)

            where = f"{code} {chapter}" + (f":{verse}" if verse is not None else "")
            click.echo(f"\n📚 Doctrines for {where}")
            click.echo("=" * 70)
            if not matches:
                click.echo("\n  No doctrine entries found")
                return

            for match in matches:
                marker = "★" if match.is_primary else "•"
                click.echo(f"  {marker} {match.entry.reference or '-'}  {match.entry.title}")
                if match.context_snippet:
                    click.echo(f"      {match.context_snippet}")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx,
            e,
            "doctrine_passage",
            additional_context={"book": code, "chapter": chapter, "verse": verse},
        )


@doctrine.command("notes")
@click.argument("reference")
@click.pass_context
def notes(ctx, reference):
    """List notes that link to REFERENCE (e.g. Ch32 or Ch32:A)."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            entry = db.systematic.get_by_reference(reference)
            found = db.systematic.notes_referencing(entry.id)

            click.echo(f"\n📝 Notes linking to {entry.reference or entry.id}: {entry.title}")
            click.echo("=" * 70)
            if not found:
                click.echo("\n  No notes found")
                return

            for note in found:
                title = note.title or "(untitled)"
                click.echo(f"  • {note.reference_label}  {title}  [{note.id}]")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx, e, "doctrine_notes", additional_context={"reference": reference}
        )


@doctrine.command("suggest")
@click.argument("book")
@click.argument("chapter", type=int)
@click.option("--verse", type=int, default=None, help="Restrict to one verse")
@click.pass_context
def suggest(ctx, book, chapter, verse):
    """Suggest topics for BOOK CHAPTER."""
    code = _book_code(book)
    try:
        db = get_db(ctx)
        with db.session_scope():
            suggestions = db.systematic.suggest_topics_for_passage(code, chapter, verse)

            click.echo(f"\n🏷️  Suggested topics for {code} {chapter}")
            click.echo("=" * 70)
            if not suggestions:
                click.echo("\n  No suggestions")
                return

            for suggestion in suggestions:
                click.echo(
                    f"  • {suggestion.name}  ({suggestion.source.value})  [{suggestion.topic_id}]"
                )

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx,
            e,
            "doctrine_suggest",
            additional_context={"book": code, "chapter": chapter},
        )


@doctrine.command("links")
@click.argument("note_id")
@click.option("--apply", is_flag=True, help="Append the links to the note")
@click.pass_context
def links(ctx, note_id, apply):
    """Propose doctrine links missing from a note."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            entries = db.systematic.suggest_doctrine_links(note_id, apply=apply)

            if not entries:
                click.echo("✅ Nothing to suggest")
                return

            for entry in entries:
                click.echo(f"  • {entry.reference}  {entry.title}")
            if apply:
                click.echo(f"✅ Added {len(entries)} link(s) to the note")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "doctrine_links", additional_context={"note_id": note_id})
