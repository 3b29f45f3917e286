"""Live view of mixer telemetry."""

import logging
from pathlib import Path

import click

from mixlink.cli.output import exit_with_error
from mixlink.exceptions import MixlinkError
from mixlink.models import AppConfig
from mixlink.protocols import ButtonEvent, SliderMoveEvent
from mixlink.serial import ConnectionManager, TelemetryTracker

logger = logging.getLogger(__name__)


def build_connection(config: AppConfig, port: str | None, baud: int | None) -> ConnectionManager:
    """Create a ConnectionManager from config, with optional CLI overrides."""
    connection = config.connection.model_copy()
    if port:
        connection.port = port
    if baud:
        connection.baud_rate = baud

    tracker = TelemetryTracker(invert=config.invert_sliders, noise_threshold=config.noise_threshold)
    return ConnectionManager(connection, tracker=tracker)


def _echo_event(event) -> None:
    if isinstance(event, SliderMoveEvent):
        click.echo(f"slider {event.index}: {event.value:.2f}")
    elif isinstance(event, ButtonEvent):
        click.echo(f"button {event.button_id}")


@click.command(name="monitor")
@click.option("--port", "-p", type=str, default=None, help='Serial port (default: from config, "auto" probes)')
@click.option("--baud", "-b", type=int, default=None, help="Baud rate (default: from config)")
@click.option("--tui/--no-tui", default=True, help="Show the interactive monitor (default) or print events")
@click.pass_context
def monitor(ctx, port: str | None, baud: int | None, tui: bool):
    """
    Watch slider moves and button presses from the mixer.

    Only reads from the device: no LEDs are driven and buttons trigger no
    media keys. Press Ctrl+C (or q in the interactive monitor) to stop.
    """
    config_path: Path = ctx.obj["config_path"]
    log_path: Path | None = ctx.obj.get("log_path")

    try:
        config = AppConfig.load_or_default(config_path)
    except MixlinkError as e:
        exit_with_error(e, log_path)

    connection = build_connection(config, port, baud)

    if tui:
        from mixlink.tui import MonitorApp

        MonitorApp(connection).run()
        return

    subscription = connection.subscribe()
    try:
        connection.start()
        click.echo(f"Connected to {connection.current_port}, press Ctrl+C to stop\n")
        while connection.is_connected:
            _echo_event(subscription.get(timeout=0.5))
        # Events decoded just before the link dropped
        for event in subscription.drain():
            _echo_event(event)
        click.echo("Connection lost.", err=True)
    except KeyboardInterrupt:
        logger.info("Monitor interrupted by user")
        click.echo("\nStopping...", err=True)
    except MixlinkError as e:
        exit_with_error(e, log_path)
    finally:
        subscription.close()
        connection.stop()
