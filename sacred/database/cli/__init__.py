#!/usr/bin/env python3
"""
SACRED Database Management CLI
-------------------------------

Modular command-line interface for the SACRED note database.

This module provides the main CLI group and shared context setup
for all database commands.

Command Structure:
    - Setup & Initialization (init)
    - Reference parsing (parse)
    - Topic taxonomy (topics)
    - Doctrine cross-references (doctrine)
    - Snapshot export & import (backup)

Usage:
    # Get general help
    sacred-db --help

    # Get help for a specific command group
    sacred-db topics --help

    # Get help for a specific command
    sacred-db doctrine passage --help
"""
import click
import logging
from pathlib import Path

from sacred.core.paths import DB_PATH, ALEMBIC_DIR, LOG_DIR
from sacred.database import SacredDB


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    default=str(DB_PATH),
    help="Path to database file",
)
@click.option(
    "--alembic-dir",
    type=click.Path(),
    default=str(ALEMBIC_DIR),
    help="Path to Alembic directory",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=str(LOG_DIR),
    help="Path to log directory",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, db_path, alembic_dir, log_dir, verbose):
    """SACRED Database Management CLI"""

    # Suppress Alembic INFO logging by default
    logging.getLogger("alembic").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db_path)
    ctx.obj["alembic_dir"] = Path(alembic_dir)
    ctx.obj["log_dir"] = Path(log_dir)
    ctx.obj["verbose"] = verbose


def get_db(ctx) -> SacredDB:
    """Get or create database instance from context."""
    if "db" not in ctx.obj:
        ctx.obj["db"] = SacredDB(
            db_path=ctx.obj["db_path"],
            alembic_dir=ctx.obj["alembic_dir"],
            log_dir=ctx.obj["log_dir"],
        )
        ctx.obj["logger"] = ctx.obj["db"].logger
    return ctx.obj["db"]


# Import and register command modules
# These imports must come after CLI group definition
from .setup import init  # noqa: E402
from .parse import parse  # noqa: E402
from .topics import topics  # noqa: E402
from .doctrine import doctrine  # noqa: E402
from .backup import backup  # noqa: E402

# Register top-level commands
cli.add_command(init)
cli.add_command(parse)

# Register command groups
cli.add_command(topics)
cli.add_command(doctrine)
cli.add_command(backup)


if __name__ == "__main__":
    cli(obj={})
