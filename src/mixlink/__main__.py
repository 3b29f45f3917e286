"""Main entry point for mixlink."""

from mixlink.cli.main import cli

if __name__ == "__main__":
    cli()
