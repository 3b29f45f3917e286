"""Run the mixer host."""

import logging
from pathlib import Path

import click

from mixlink.cli.output import exit_with_error
from mixlink.models import AppConfig

logger = logging.getLogger(__name__)


@click.command(name="run")
@click.pass_context
def run(ctx):
    """
    Connect to the mixer and run until Ctrl+C.

    The config file is watched and reloaded on change; a changed port or
    baud rate renews the connection.
    """
    from mixlink.app import MixlinkApp
    from mixlink.services import ConfigService

    config_path: Path = ctx.obj["config_path"]
    log_path: Path | None = ctx.obj.get("log_path")

    logger.info("Starting mixlink")
    app = None
    try:
        config = AppConfig.load_or_default(config_path)
        service = ConfigService(config, config_path)

        app = MixlinkApp(service, config_path=config_path)

        click.echo(f"mixlink running with {config_path} (Ctrl+C to quit)")
        app.start()
        if not app.connection.is_connected:
            click.echo("Not connected to the mixer, see the log for details.", err=True)
        app.run()

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        click.echo("\nShutting down...", err=True)
    except click.Abort:
        raise
    except Exception as e:
        exit_with_error(e, log_path)
    finally:
        if app is not None:
            app.shutdown()
