"""Live terminal monitor for slider values and button presses."""

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Log

from mixlink.exceptions import MixlinkError
from mixlink.protocols import ButtonEvent, ConnectionEvent, SliderMoveEvent
from mixlink.serial import ConnectionManager, OverflowPolicy, Subscription

from .widgets import SliderRow, StatusBar

logger = logging.getLogger(__name__)

# The UI only needs the latest values, so a slow redraw drops old events
EVENT_BUFFER_SIZE = 256
DRAIN_INTERVAL = 0.05


class MonitorApp(App):
    """
    Textual monitor for a ConnectionManager.

    Shows one bar per slider, a log of button presses and the connection
    state. Device events are read from a bounded DROP_OLDEST subscription on
    a timer, so the UI can never stall the serial read loop.
    """

    TITLE = "mixlink monitor"

    BINDINGS = [
        Binding("r", "reconnect", "Reconnect", show=True),
        Binding("c", "clear_log", "Clear Log", show=True),
        Binding("q", "quit", "Quit", show=True),
    ]

    def __init__(self, connection: ConnectionManager, manage_connection: bool = True):
        """
        Initialize the monitor.

        Args:
            connection: The connection to watch
            manage_connection: Start the connection on mount and stop it on exit
        """
        super().__init__()
        self.connection = connection
        self._manage_connection = manage_connection
        self._subscription: Subscription | None = None
        self._rows: list[SliderRow] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(id="sliders")
        yield Log(id="buttons", max_lines=200)
        yield StatusBar()
        yield Footer()

    def on_mount(self) -> None:
        self._subscription = self.connection.subscribe(
            maxsize=EVENT_BUFFER_SIZE, overflow=OverflowPolicy.DROP_OLDEST
        )
        self.connection.register_observer(self)
        self.query_one(StatusBar).update_state(self.connection.is_connected, self.connection.current_port)
        self.set_interval(DRAIN_INTERVAL, self.drain_events)

        if self._manage_connection:
            self.run_worker(self._connect, thread=True, exclusive=True)

    def on_unmount(self) -> None:
        self.connection.unregister_observer(self)
        if self._subscription:
            self._subscription.close()
        if self._manage_connection:
            self.connection.stop()

    # =================================================================
    # Connection
    # =================================================================

    def _connect(self) -> None:
        """Worker thread: connecting may probe ports for a few seconds."""
        self.call_from_thread(self._set_status, False, None, "Connecting...")
        try:
            self.connection.start()
        except MixlinkError as e:
            logger.error(f"Monitor failed to connect: {e.get_full_message()}")
            self.call_from_thread(self._set_status, False, None, e.user_message)

    def on_connection_event(self, event: ConnectionEvent, port: str | None = None, error: Exception | None = None) -> None:
        """ConnectionObserver hook; may run on the serial thread."""
        connected = event is ConnectionEvent.CONNECTED
        detail = f"Lost: {error}" if event is ConnectionEvent.CONNECTION_LOST else ""
        try:
            self.call_from_thread(self._set_status, connected, port, detail)
        except RuntimeError:
            # Already on the UI thread
            self._set_status(connected, port, detail)

    def _set_status(self, connected: bool, port: str | None, detail: str = "") -> None:
        self.query_one(StatusBar).update_state(connected, port, detail)

    def action_reconnect(self) -> None:
        """Drop the connection and connect again."""
        self.query_one(Log).write_line("Reconnecting...")
        self.run_worker(self._reconnect, thread=True, exclusive=True)

    def _reconnect(self) -> None:
        self.connection.stop()
        self.connection.tracker.reset()
        self._connect()

    def action_clear_log(self) -> None:
        self.query_one(Log).clear()

    # =================================================================
    # Events
    # =================================================================

    @property
    def slider_rows(self) -> list[SliderRow]:
        return list(self._rows)

    async def drain_events(self) -> None:
        """Apply every queued device event to the widgets."""
        if self._subscription is None:
            return

        await self._sync_row_count(self.connection.tracker.slider_count)

        for event in self._subscription.drain():
            if isinstance(event, SliderMoveEvent):
                await self._sync_row_count(max(len(self._rows), event.index + 1))
                self._rows[event.index].set_value(event.value)
            elif isinstance(event, ButtonEvent):
                self.query_one(Log).write_line(f"Button {event.button_id} pressed")

        if self._subscription.dropped:
            self.sub_title = f"{self._subscription.dropped} events skipped"

    async def _sync_row_count(self, count: int) -> None:
        """Add or remove slider rows to match the device's slider count."""
        if count == 0 or count == len(self._rows):
            return

        if count < len(self._rows):
            stale, self._rows = self._rows[count:], self._rows[:count]
            for row in stale:
                await row.remove()
        else:
            new_rows = [SliderRow(i) for i in range(len(self._rows), count)]
            self._rows.extend(new_rows)
            await self.query_one("#sliders", VerticalScroll).mount_all(new_rows)
        logger.debug(f"Monitor showing {count} sliders")
