"""Command line interface: ``python -m website``."""

import sys

import click

from website.core.config import Settings
from website.core.exceptions import ExitCode, FatalStartupError, StoreError
from website.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _load(settings: Settings):  # type: ignore[no-untyped-def]
    from website.content.engine import SyncEngine

    try:
        return SyncEngine.from_settings(settings)
    except FatalStartupError as e:
        logger.critical("startup_failed", error=str(e), exit_code=int(e.exit_code))
        sys.exit(e.exit_code)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Personal website management commands."""
    settings = Settings()
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
    ctx.obj = settings


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8000, type=int, help="Port to bind to")
@click.pass_obj
def serve(settings: Settings, host: str, port: int) -> None:
    """Reconcile all content, then serve the website."""
    import uvicorn

    from website.main import create_app

    engine = _load(settings)
    try:
        engine.start()
    except FatalStartupError as e:
        logger.critical("startup_failed", error=str(e), exit_code=int(e.exit_code))
        sys.exit(e.exit_code)

    try:
        uvicorn.run(create_app(settings, engine), host=host, port=port, log_config=None)
    finally:
        engine.stop()


@cli.command()
@click.pass_obj
def reconcile(settings: Settings) -> None:
    """Run one full reconciliation of every content directory."""
    engine = _load(settings)
    try:
        reports = engine.reconcile_all()
    except FatalStartupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.STORE_UNAVAILABLE)

    for kind, report in reports.items():
        click.echo(
            f"{kind.value}: {report.created} created, {report.updated} updated, "
            f"{report.unchanged} unchanged, {report.deleted} deleted, "
            f"{report.failed} failed"
        )
    if any(report.failed for report in reports.values()):
        sys.exit(1)


@cli.command()
@click.pass_obj
def status(settings: Settings) -> None:
    """Show stored record counts per content kind."""
    engine = _load(settings)
    try:
        summary = engine.status()
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.STORE_UNAVAILABLE)

    click.echo("Content Status:")
    for kind, counts in summary.items():
        click.echo(f"  {kind}: {counts['stored']} stored")
    click.echo(f"  Database: {settings.DATABASE_URL}")


if __name__ == "__main__":
    cli()
