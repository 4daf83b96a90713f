# src/objsync/cli.py
"""Command-line interface for the objsync tool."""

import asyncio
import logging
import sys
from typing import Any

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from objsync.config import AppConfig, Config, StoreConfig
from objsync.exceptions import ObjSyncError
from objsync.models import StatsSnapshot
from objsync.signals import GracefulShutdown

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["botocore", "aiobotocore", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


async def main_async(config: Config) -> StatsSnapshot:
    """
    Open both stores and run the sync pipeline.

    Args:
        config (Config): The application configuration.

    Returns:
        StatsSnapshot: The final counters of the run.
    """
    # Lazily import to keep CLI startup fast
    from objsync.pipeline import SyncPipeline
    from objsync.stores import open_store

    async with GracefulShutdown() as shutdown_event:
        async with (
            open_store(config.source, config.app) as source,
            open_store(config.destination, config.app) as destination,
        ):
            pipeline: SyncPipeline = SyncPipeline(
                source, destination, config.app, shutdown_event
            )
            return await pipeline.run()


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("source")
@click.argument("destination")
@click.option(
    "--start",
    default="",
    help="Only sync keys sorting after this one.",
)
@click.option(
    "--end",
    default="",
    help="Only sync keys sorting before this one.",
)
@click.option(
    "-p",
    "--workers",
    type=int,
    default=50,
    help="Number of concurrent transfers.",
    show_default=True,
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log every object.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Only log problems.")
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy the objects of SOURCE missing from DESTINATION.

    Both stores are listed in key order and compared in a single pass,
    so arbitrarily large buckets are mirrored in constant memory. Objects
    already present at the destination are never compared or overwritten,
    and objects only present at the destination are left alone.

    Stores are given as s3://bucket[/prefix], file:///path or a local path.
    S3 endpoints and credentials are read from OBJSYNC_SOURCE_* and
    OBJSYNC_DESTINATION_* environment variables, see .env.example.
    """
    load_dotenv()
    level: str = kwargs["log_level"]
    if kwargs["verbose"]:
        level = "DEBUG"
    elif kwargs["quiet"]:
        level = "WARNING"
    setup_logging(level)

    try:
        app_config: AppConfig = AppConfig(
            workers=kwargs["workers"],
            start=kwargs["start"],
            end=kwargs["end"],
            show_progress=not (kwargs["verbose"] or kwargs["quiet"]),
        )
        app_config.validate()
        config: Config = Config(
            source=StoreConfig.from_env("source", kwargs["source"]),
            destination=StoreConfig.from_env("destination", kwargs["destination"]),
            app=app_config,
        )

        result: StatsSnapshot = asyncio.run(main_async(config))
        if result.failed:
            logger.warning(f"{result.failed} objects could not be copied.")
    except ObjSyncError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except asyncio.CancelledError:
        logger.warning("Shutdown signal received. Exiting.")
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
