"""Line framing for the serial byte stream."""

import logging

logger = logging.getLogger(__name__)

# Longest partial line kept while waiting for a terminator
MAX_LINE_LENGTH = 1024


class LineFramer:
    """
    Accumulates raw bytes and yields complete newline-terminated lines.

    Bytes are decoded as latin-1 so every byte maps to exactly one character
    and nothing is lost; non-ASCII content simply fails validation later.
    Returned lines keep their terminator (``\\n`` and any preceding ``\\r``),
    because the telemetry pattern requires ``\\r\\n``.

    Chunk boundaries never change the result: feeding ``b"1|2\\r"`` then
    ``b"\\n"`` produces the same single line as feeding ``b"1|2\\r\\n"``.
    """

    def __init__(self, max_pending: int | None = None):
        """
        Initialize framer.

        Args:
            max_pending: Optional cap on buffered bytes without a newline.
                When exceeded the partial line is discarded, which guards
                against a device spewing garbage with no terminator.
        """
        self._buffer = ""
        self._max_pending = max_pending

    def feed(self, data: bytes) -> list[str]:
        """
        Add bytes and return every line they completed, in order.

        Args:
            data: Raw bytes read from the port (may be empty)

        Returns:
            Complete lines including their ``\\n`` terminator
        """
        if not data:
            return []

        complete, newline, self._buffer = (self._buffer + data.decode("latin-1")).rpartition("\n")
        lines = [part + "\n" for part in complete.split("\n")] if newline else []

        if self._max_pending is not None and len(self._buffer) > self._max_pending:
            logger.debug(f"Discarding {len(self._buffer)} unterminated bytes")
            self._buffer = ""

        return lines

    @property
    def pending(self) -> str:
        """Bytes received after the last newline."""
        return self._buffer

    def reset(self) -> None:
        """Drop any partial line."""
        self._buffer = ""
