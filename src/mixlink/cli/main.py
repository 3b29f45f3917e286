"""Main CLI entry point."""

import logging
import logging.handlers
from pathlib import Path

import click

from mixlink import __version__
from mixlink.models.config import DEFAULT_CONFIG_PATH

from .commands import config, monitor, ports_group, run

logger = logging.getLogger(__name__)

LOG_DIR = Path.home() / ".mixlink" / "logs"


class ComponentFilter(logging.Filter):
    """Keeps only records whose logger name contains one of the given components."""

    def __init__(self, components: tuple[str, ...]):
        super().__init__()
        self._components = tuple(c.lower() for c in components)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name.lower()
        return any(component in name for component in self._components)


def setup_logging(
    verbose: int,
    debug: bool,
    log_file: Path | None,
    log_level: str,
    log_filter: tuple[str, ...] = (),
) -> Path:
    """
    Configure logging for the application.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, enable debug mode with file logging
        log_file: Custom log file path (optional)
        log_level: Log level for file logging (DEBUG/INFO/WARNING/ERROR)
        log_filter: Only keep records from loggers whose name contains one of these
            (e.g. "serial", "monitor")

    Returns:
        Path of the log file
    """
    if debug:
        level = logging.DEBUG
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Explicit log level wins for custom log files
    if log_file:
        level = getattr(logging, log_level.upper())

    if debug and not log_file:
        log_path = Path.cwd() / "mixlink-debug.log"
    elif log_file:
        log_path = log_file
    else:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_path = LOG_DIR / "mixlink.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Keeps last 5 files, max 10MB each
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    if log_filter:
        file_handler.addFilter(ComponentFilter(log_filter))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_path}")
    return log_path


@click.group(invoke_without_command=True)
@click.pass_context
@click.version_option(version=__version__, prog_name="mixlink")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Config file (default: {DEFAULT_CONFIG_PATH})",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v: INFO, -vv: DEBUG)")
@click.option("--debug", is_flag=True, help="Enable debug mode (DEBUG level, logs to ./mixlink-debug.log)")
@click.option("--log-file", type=click.Path(path_type=Path), default=None, help="Custom log file path")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Log level for file logging (default: INFO)",
)
@click.option(
    "--log-filter",
    multiple=True,
    metavar="NAME",
    help="Only log components whose name contains NAME (repeatable, e.g. serial, monitor)",
)
def cli(
    ctx,
    config_path: Path | None,
    verbose: int,
    debug: bool,
    log_file: Path | None,
    log_level: str,
    log_filter: tuple[str, ...],
):
    """
    mixlink - host for a serial hardware volume mixer.

    Reads slider positions and button presses from the mixer and drives its
    LEDs and display. Running without a command starts the mixer host.

    \b
    Examples:
      # Run with ~/.mixlink/config.json
      mixlink

      # Find the device
      mixlink ports list
      mixlink ports probe --baud 9600

      # Watch live slider values
      mixlink monitor

      # Debug the serial link only
      mixlink -vv --log-filter serial run
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or DEFAULT_CONFIG_PATH
    ctx.obj["log_path"] = setup_logging(verbose, debug, log_file, log_level, log_filter)

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


cli.add_command(run)
cli.add_command(ports_group)
cli.add_command(monitor)
cli.add_command(config)

if __name__ == "__main__":
    cli()
