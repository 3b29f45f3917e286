"""CLI commands for mixlink."""

from .config import config
from .monitor import monitor
from .ports import ports_group
from .run import run

__all__ = ["config", "monitor", "ports_group", "run"]
