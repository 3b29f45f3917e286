"""Widgets for the live mixer monitor."""

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widgets import Label, ProgressBar, Static


class SliderRow(Horizontal):
    """One slider: its index, a bar, and the current value."""

    DEFAULT_CSS = """
    SliderRow {
        height: 1;
    }

    SliderRow .slider-label {
        width: 10;
    }

    SliderRow ProgressBar {
        width: 1fr;
    }
    """

    def __init__(self, index: int) -> None:
        super().__init__(id=f"slider-{index}")
        self.index = index
        self.value: float | None = None

    def compose(self) -> ComposeResult:
        yield Label(f"Slider {self.index}", classes="slider-label")
        yield ProgressBar(total=100, show_eta=False, show_percentage=True)

    def set_value(self, value: float) -> None:
        """Show a new normalized 0.0-1.0 value."""
        self.value = value
        self.query_one(ProgressBar).update(progress=round(value * 100))


class StatusBar(Static):
    """Status line showing the connection state."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        background: $panel;
        color: $text;
        padding: 0 1;
    }

    StatusBar.connected {
        background: $success;
    }

    StatusBar.disconnected {
        background: $error;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="status-bar")
        self.connected = False
        self.port: str | None = None
        self.detail = ""

    def on_mount(self) -> None:
        self._update_display()

    def update_state(self, connected: bool, port: str | None = None, detail: str = "") -> None:
        """
        Update the connection status.

        Args:
            connected: Whether the serial link is up
            port: Port in use (or last used)
            detail: Extra text, e.g. the reason a connection failed
        """
        self.connected = connected
        self.port = port
        self.detail = detail
        self._update_display()

    def _update_display(self) -> None:
        if self.connected:
            text = f"● Connected: {self.port}"
            self.remove_class("disconnected")
            self.add_class("connected")
        else:
            text = "○ Disconnected"
            self.remove_class("connected")
            self.add_class("disconnected")

        if self.detail:
            text += f" | {self.detail}"

        self.update(text)
