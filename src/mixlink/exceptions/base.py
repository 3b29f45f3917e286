"""Base exception class for mixlink.

Every error mixlink raises on purpose derives from MixlinkError, so the CLI,
the monitor TUI and the background workers can catch them in one place and
render them the same way.
"""


class MixlinkError(Exception):
    """
    Base exception for all mixlink errors.

    ``str(error)`` is the short ``user_message`` shown by the CLI and the
    monitor's status bar. ``technical_message`` is what goes to the log file.
    ``recoverable`` marks failures the app survives: a busy or unplugged port
    can be retried with ``reconnect()`` and a broken config file leaves the
    previous config in effect.

    Attributes:
        user_message: Human-friendly message for display
        technical_message: Detailed message for logging
        recoverable: Whether the app can carry on after this error
        recovery_hint: What the user can do about it, may span several lines
        port: Serial port involved, when there is one
    """

    def __init__(
        self,
        user_message: str,
        technical_message: str | None = None,
        *,
        recoverable: bool = False,
        recovery_hint: str | None = None,
        port: str | None = None,
    ):
        super().__init__(user_message)
        self.user_message = user_message
        self.technical_message = technical_message or user_message
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint
        self.port = port

    def __str__(self) -> str:
        return self.user_message

    def __repr__(self) -> str:
        port = f", port={self.port!r}" if self.port else ""
        return f"{type(self).__name__}({self.technical_message!r}{port})"

    def get_full_message(self) -> str:
        """User message followed by the recovery hint, indented under "Suggestion:"."""
        if not self.recovery_hint:
            return self.user_message
        hint = "\n    ".join(self.recovery_hint.splitlines())
        return f"{self.user_message}\n\nSuggestion: {hint}"
