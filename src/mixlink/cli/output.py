"""Shared console output for CLI commands."""

import logging
import sys
from pathlib import Path

import click

from mixlink.exceptions import format_error_for_display

logger = logging.getLogger(__name__)


def exit_with_error(error: Exception, log_path: Path | None = None) -> None:
    """
    Show an error without a traceback and exit with code 1.

    Args:
        error: The exception to report (MixlinkError gets its recovery hint shown)
        log_path: Log file to point the user at, if known
    """
    logger.error(f"Command failed: {error}", exc_info=True)

    user_message, recovery_hint = format_error_for_display(error)

    click.echo("\n" + "=" * 70, err=True)
    click.echo(f"ERROR: {user_message}", err=True)
    click.echo("=" * 70, err=True)

    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)

    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)

    sys.exit(1)
