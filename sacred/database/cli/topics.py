"""
Topic Taxonomy Commands
------------------------

Browse and restructure the topic tree.

Commands:
    - tree: Print the topic forest (optionally with note counts)
    - seed: Create the default taxonomy on an empty database
    - move: Re-parent a topic (or move it to the root)
    - delete: Delete a topic and its whole subtree

Usage:
    sacred-db topics tree --counts
    sacred-db topics move <topic-id> --parent <parent-id>
    sacred-db topics move <topic-id>            # move to root
"""
import click

from sacred.core.logging_manager import handle_cli_error
from sacred.core.exceptions import DatabaseError
from . import get_db


def _echo_node(node, depth: int, counts: bool) -> None:
    suffix = f" ({node.note_count})" if counts and node.note_count is not None else ""
    click.echo(f"{'  ' * depth}• {node.name}{suffix}  [{node.id}]")
    for child in node.children:
        _echo_node(child, depth + 1, counts)


@click.group()
@click.pass_context
def topics(ctx: click.Context) -> None:
    """Browse and edit the topic taxonomy."""
    pass


@topics.command("tree")
@click.option("--counts", is_flag=True, help="Show note counts per subtree")
@click.pass_context
def tree(ctx, counts):
    """Display the topic tree."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            roots = db.topics.tree(include_counts=counts)

            click.echo("\n🌳 Topics")
            click.echo("=" * 70)
            if not roots:
                click.echo("\n  No topics found")
                return
            for root in roots:
                _echo_node(root, 0, counts)

    except DatabaseError as e:
        handle_cli_error(ctx, e, "topics_tree")


@topics.command("seed")
@click.pass_context
def seed(ctx):
    """Create the default topic taxonomy."""
    try:
        click.echo("🌱 Seeding default topics...")
        db = get_db(ctx)
        with db.session_scope():
            created = db.topics.seed_defaults()
        click.echo(f"✅ Created {len(created)} topics")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "topics_seed")


@topics.command("move")
@click.argument("topic_id")
@click.option("--parent", "parent_id", default=None, help="New parent id (omit for root)")
@click.pass_context
def move(ctx, topic_id, parent_id):
    """Move a topic under a new parent."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            topic = db.topics.set_parent(topic_id, parent_id)
            target = parent_id or "root"
            click.echo(f"✅ Moved '{topic.name}' under {target}")

    except DatabaseError as e:
        handle_cli_error(
            ctx,
            e,
            "topics_move",
            additional_context={"topic_id": topic_id, "parent_id": parent_id},
        )


@topics.command("delete")
@click.argument("topic_id")
@click.confirmation_option(
    prompt="⚠️  This deletes the topic and every sub-topic! Continue?"
)
@click.pass_context
def delete(ctx, topic_id):
    """Delete a topic and all of its descendants."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            removed = db.topics.delete(topic_id)
        click.echo(f"🗑️  Deleted {removed} topic(s)")

    except DatabaseError as e:
        handle_cli_error(
            ctx, e, "topics_delete", additional_context={"topic_id": topic_id}
        )
