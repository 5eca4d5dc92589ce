"""Administrative CLI entry point."""

import click

from donvie_api.config.env import get_database_url
from donvie_api.db.engine import build_engine, build_sessionmaker
from donvie_api.db.models import Base
from donvie_api.db.seed import seed_associations
from donvie_api.errors import DonvieError
from donvie_api.ledger.directory import AssociationDirectory


@click.group()
@click.option(
    "--database-url",
    help="Database URL (overrides DATABASE_URL environment variable)",
    envvar="DATABASE_URL",
)
@click.pass_context
def cli(ctx, database_url: str | None):
    """DonVie - donation ledger administration.

    Create the schema, load demo associations and manage association
    verification outside the HTTP API.
    """
    ctx.ensure_object(dict)

    # Only connect when a command actually runs (not for --help)
    if ctx.invoked_subcommand is not None and ctx.invoked_subcommand != "serve":
        engine = build_engine(database_url or get_database_url())
        ctx.obj["engine"] = engine
        ctx.obj["sessionmaker"] = build_sessionmaker(engine)


@cli.command("init-db")
@click.pass_context
def init_db(ctx):
    """Create all tables (local SQLite; use Alembic for PostgreSQL)."""
    Base.metadata.create_all(ctx.obj["engine"])
    click.echo("Database schema created.")


@cli.command("seed")
@click.pass_context
def seed(ctx):
    """Load the demo associations into an empty database."""
    Base.metadata.create_all(ctx.obj["engine"])
    with ctx.obj["sessionmaker"]() as db:
        inserted = seed_associations(db)

    if inserted:
        click.echo(f"Seeded {inserted} associations.")
    else:
        click.echo("Associations already present; nothing seeded.")


@cli.command("verify")
@click.argument("association_id", type=int)
@click.option("--revoke", is_flag=True, help="Remove the verified badge instead of granting it")
@click.pass_context
def verify(ctx, association_id: int, revoke: bool):
    """Grant (or revoke) the verified badge of an association."""
    with ctx.obj["sessionmaker"]() as db:
        try:
            association = AssociationDirectory(db).set_verified(association_id, not revoke)
        except DonvieError as e:
            click.echo(f"Error: {e.detail}", err=True)
            ctx.exit(1)

        state = "verified" if association.verified else "not verified"
        click.echo(f"Association #{association.id} '{association.name}' is now {state}.")


@cli.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
@click.option("--port", default=5000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("donvie_api.main:app", host=host, port=port, reload=reload)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
