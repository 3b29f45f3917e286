"""Application configuration model and its JSON file."""

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from mixlink.exceptions import ConfigFileInvalidError, wrap_pydantic_error
from mixlink.models.enums import LEDMode, MediaAction, NoiseReduction

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".mixlink" / "config.json"

AUTO_PORT = "auto"


class ConnectionConfig(BaseModel):
    """Serial connection parameters."""

    port: str = Field(
        default=AUTO_PORT,
        description='Serial port (e.g. "COM4", "/dev/ttyUSB0"), or "auto" to probe all ports',
    )
    baud_rate: int = Field(default=9600, gt=0, description="Serial baud rate, must match the firmware")

    @property
    def is_auto(self) -> bool:
        """True when the port should be found by probing."""
        return not self.port.strip() or self.port.strip().lower() == AUTO_PORT


def _default_button_actions() -> dict[str, MediaAction]:
    return {
        "0": MediaAction.PLAY_PAUSE,
        "1": MediaAction.PREV_TRACK,
        "2": MediaAction.NEXT_TRACK,
    }


class AppConfig(BaseModel):
    """Application configuration and settings."""

    connection: ConnectionConfig = Field(
        default_factory=ConnectionConfig,
        description="Serial connection settings",
    )

    # Slider handling
    invert_sliders: bool = Field(default=False, description="Report 1 - x instead of x for every slider")
    noise_reduction: NoiseReduction | float = Field(
        default=NoiseReduction.DEFAULT,
        description='Noise gate: "low", "default", "high" or an explicit threshold between 0 and 1',
    )
    slider_mapping: dict[int, list[str]] = Field(
        default_factory=dict,
        description="Process names (or master/mic/system) controlled by each slider index",
    )

    # LED / display feedback
    led_mode: LEDMode = Field(default=LEDMode.PROCESS, description="What drives the slider LEDs")
    led_refresh_interval: float = Field(
        default=0.0,
        ge=0.0,
        description="Seconds between full LED state resends (0 = disabled)",
    )
    process_check_interval: float = Field(
        default=2.0, gt=0.0, description="Seconds between process checks in process mode"
    )
    audio_check_interval: float = Field(
        default=0.1, gt=0.0, description="Seconds between audio peak checks in audio mode"
    )

    # Buttons
    button_actions: dict[str, MediaAction] = Field(
        default_factory=_default_button_actions,
        description="Media action triggered by each device button id",
    )

    config_watch_interval: float = Field(
        default=2.0,
        ge=0.0,
        description="Seconds between config file change checks (0 = no hot reload)",
    )

    @field_validator("slider_mapping", mode="before")
    @classmethod
    def _wrap_single_targets(cls, value):
        """Accept a bare string as a one-element target list."""
        if isinstance(value, dict):
            return {k: [v] if isinstance(v, str) else v for k, v in value.items()}
        return value

    @field_validator("noise_reduction")
    @classmethod
    def _check_threshold_range(cls, value):
        if isinstance(value, float) and not 0.0 <= value <= 1.0:
            raise ValueError("noise threshold must be between 0 and 1")
        return value

    @property
    def noise_threshold(self) -> float:
        """Resolved noise-gate threshold."""
        if isinstance(self.noise_reduction, NoiseReduction):
            return self.noise_reduction.threshold
        return float(self.noise_reduction)

    @property
    def num_sliders(self) -> int:
        """Number of slider slots covered by the mapping (highest index + 1)."""
        return max(self.slider_mapping, default=-1) + 1

    def describe(self) -> str:
        """One-line summary of the connection and slider setup."""
        port = "auto-detect" if self.connection.is_auto else self.connection.port
        return (
            f"port {port} at {self.connection.baud_rate} baud, "
            f"{len(self.slider_mapping)} mapped slider(s), LEDs by {self.led_mode.value}"
        )

    # =================================================================
    # Config file
    # =================================================================

    @classmethod
    def load(cls, path: Path) -> "AppConfig":
        """
        Read and validate a config file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigFileInvalidError: If the file is empty, unreadable or not JSON
            ConfigValidationError: If a value is out of range (e.g. baud_rate 0)
        """
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileInvalidError(str(path), f"Cannot read file: {e}") from e

        if not text.strip():
            raise ConfigFileInvalidError(str(path), "File is empty")

        try:
            config = cls.model_validate_json(text)
        except ValidationError as e:
            logger.error(f"Invalid config in {path}: {e}")
            raise wrap_pydantic_error(e, str(path)) from e

        logger.debug(f"Loaded config from {path}: {config.describe()}")
        return config

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        A missing file gives defaults (auto-detected port, 9600 baud) and is
        not created. A broken file raises instead, so it is never silently
        replaced on the next save.

        Args:
            path: Path to config file. If None, uses ~/.mixlink/config.json.
        """
        path = path or DEFAULT_CONFIG_PATH
        try:
            return cls.load(path)
        except FileNotFoundError:
            logger.info(f"No config at {path}, using defaults")
            return cls()

    def save(self, path: Path | None = None, backup: bool = True) -> None:
        """
        Write the config as indented JSON.

        The previous file is copied to ``<name>.bak`` first and the new one is
        written to ``<name>.tmp`` then renamed over it, so a crash mid-write
        leaves either the old or the new config on disk.

        Raises:
            OSError: If the file cannot be written
        """
        path = path or DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)

        if backup and path.exists():
            shutil.copy2(path, path.with_suffix(path.suffix + ".bak"))

        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
            temp_path.replace(path)
        finally:
            temp_path.unlink(missing_ok=True)

        logger.debug(f"Saved config to {path}")
