"""Serial port commands."""

import logging

import click
from serial.tools import list_ports

from mixlink.cli.output import exit_with_error
from mixlink.exceptions import MixlinkError
from mixlink.models import AppConfig
from mixlink.serial import PortProbe

logger = logging.getLogger(__name__)


@click.group(name="ports")
def ports_group():
    """Serial port discovery commands."""
    pass


@ports_group.command(name="list")
def list_serial_ports():
    """List available serial ports."""
    try:
        ports = list(list_ports.comports())
    except Exception as e:
        logger.warning(f"Failed to enumerate serial ports: {e}")
        ports = []

    click.echo("Serial Ports:\n")
    if not ports:
        click.echo("  No serial ports found.")
        return

    for i, port in enumerate(ports):
        description = port.description if port.description and port.description != "n/a" else ""
        click.echo(f"  [{i}] {port.device}  {description}".rstrip())


@ports_group.command(name="probe")
@click.option("--baud", "-b", type=int, default=None, help="Baud rate to probe with (default: from config)")
@click.pass_context
def probe_ports(ctx, baud: int | None):
    """
    Listen on every serial port for mixer telemetry.

    Each port is opened for up to 2 seconds; ports that send at least two
    valid slider lines are reported as mixers.
    """
    if baud is None:
        config_path = (ctx.obj or {}).get("config_path")
        try:
            baud = AppConfig.load_or_default(config_path).connection.baud_rate
        except MixlinkError as e:
            exit_with_error(e)

    probe = PortProbe()
    ports = probe.candidate_ports()

    if not ports:
        click.echo("No serial ports found.")
        return

    click.echo(f"Probing {len(ports)} port(s) at {baud} baud...\n")
    found = []
    for port in ports:
        accepted = probe.probe_port(port, baud)
        click.echo(f"  {port}: {'mixer found' if accepted else 'no mixer'}")
        if accepted:
            found.append(port)

    if found:
        click.echo(f"\nUse \"port\": \"{found[0]}\" in your config, or leave it as \"auto\".")
    else:
        click.echo("\nNo mixer found. Check the cable and that the baud rate matches the firmware.")
