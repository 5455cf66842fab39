"""
Reference Parsing Command
--------------------------

Commands:
    - parse: Show how a free-text Scripture reference is understood

Usage:
    sacred-db parse "Romans 3:21-26"
    sacred-db parse "1 Cor 13"
"""
import sys
import click

from sacred.scripture import format_reference, parse_reference


@click.command()
@click.argument("reference")
def parse(reference):
    """Parse a Scripture reference such as 'Genesis 1:1-2:3'."""
    result = parse_reference(reference)
    if not result:
        click.echo(f"❌ Could not parse '{reference}': {result.reason}", err=True)
        sys.exit(1)

    click.echo(f"📖 {format_reference(result)}")
    click.echo(f"  Book: {result.book}")
    click.echo(f"  Start: {result.start_chapter}:{result.start_verse or '-'}")
    click.echo(f"  End: {result.end_chapter}:{result.end_verse or '-'}")
