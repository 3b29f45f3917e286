"""
Configuration commands.

Commands:
    - config show       # Print the effective configuration as JSON
    - config path       # Print the config file location
    - config init       # Write a default config file
    - config validate   # Check the config file for errors
"""

from pathlib import Path

import click

from mixlink.cli.output import exit_with_error
from mixlink.exceptions import ConfigurationError, MixlinkError
from mixlink.models import AppConfig


def _config_path(ctx) -> Path:
    return ctx.obj["config_path"]


@click.group(name="config")
def config():
    """View and manage the mixlink configuration."""
    pass


@config.command(name="show")
@click.pass_context
def show_config(ctx):
    """Print the effective configuration (defaults if no file exists)."""
    path = _config_path(ctx)
    try:
        app_config = AppConfig.load_or_default(path)
    except MixlinkError as e:
        exit_with_error(e)

    if not path.exists():
        click.echo(f"# {path} does not exist, showing defaults", err=True)
    click.echo(app_config.model_dump_json(indent=2))


@config.command(name="path")
@click.pass_context
def show_path(ctx):
    """Print the config file location."""
    click.echo(str(_config_path(ctx)))


@config.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file (a .bak backup is kept)")
@click.pass_context
def init_config(ctx, force: bool):
    """Write a config file with default settings."""
    path = _config_path(ctx)
    if path.exists() and not force:
        click.echo(f"Config already exists: {path} (use --force to overwrite)", err=True)
        ctx.exit(1)

    try:
        AppConfig().save(path)
    except (MixlinkError, OSError) as e:
        exit_with_error(e)

    click.echo(f"Wrote default config to {path}")


@config.command(name="validate")
@click.pass_context
def validate_config(ctx):
    """Check the config file for syntax and value errors."""
    path = _config_path(ctx)

    try:
        config = AppConfig.load(path)
    except FileNotFoundError:
        click.echo(f"✗ {path} not found (run 'mixlink config init' to create it)", err=True)
        ctx.exit(1)
    except ConfigurationError as e:
        click.echo(f"✗ {path} is invalid:\n\n{e.get_full_message()}", err=True)
        ctx.exit(1)
    else:
        click.echo(f"✓ {path} is valid: {config.describe()}")
