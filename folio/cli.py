import click


@click.group()
def main() -> None:
    """Folio document organizer."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: FOLIO_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (default: FOLIO_PORT).")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    from folio.organizer.settings import get_settings

    settings = get_settings()
    uvicorn.run(
        "folio.organizer.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",
        # Open tree streams would otherwise hold shutdown indefinitely.
        timeout_graceful_shutdown=10,
    )


def _alembic(name: str, *args, **kwargs) -> None:
    from pathlib import Path

    from alembic import command
    from alembic.config import Config

    config = Config(str(Path(__file__).parent / "organizer" / "alembic.ini"))
    getattr(command, name)(config, *args, **kwargs)


@main.group()
def db() -> None:
    """Manage the documents table schema."""


@db.command()
@click.option("--revision", default="head", show_default=True)
def upgrade(revision: str) -> None:
    _alembic("upgrade", revision)
    click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", show_default=True)
def downgrade(revision: str) -> None:
    _alembic("downgrade", revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
def current() -> None:
    """Print the applied revision."""
    _alembic("current", verbose=True)


@db.command()
def history() -> None:
    _alembic("history", verbose=True)


if __name__ == "__main__":
    main()
