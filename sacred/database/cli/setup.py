"""
Setup & Initialization Commands
--------------------------------

Database initialization commands.

Commands:
    - init: Create (or migrate) the schema and seed defaults
"""
import click

from sacred.core.logging_manager import handle_cli_error
from sacred.core.exceptions import DatabaseError
from . import get_db


@click.command()
@click.option("--seed-topics", is_flag=True, help="Also seed the default topic taxonomy")
@click.pass_context
def init(ctx, seed_topics):
    """Initialize the database schema and default rows."""
    try:
        click.echo("🚀 Initializing SACRED database...")
        db = get_db(ctx)

        click.echo("🗄️  Applying schema...")
        db.initialize_schema()
        status = db.get_migration_history()
        click.echo(f"  Revision: {status['current_revision']}")

        if seed_topics:
            with db.session_scope():
                if db.topics.get_all():
                    click.echo("  Topics already present, skipping seed")
                else:
                    created = db.topics.seed_defaults()
                    click.echo(f"  Seeded {len(created)} topics")

        click.echo("✅ Database ready!")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "init")
