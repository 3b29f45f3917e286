"""
Centralized error handling utilities.

Errors are handled in layers:

1. **Custom Exceptions** - Typed, user-friendly error classes (see base, serial, config modules)
2. **Error Context** - Preserve technical details for logging, show friendly messages to users
3. **Recovery Hints** - Tell users what to do when things fail

## Quick Reference

| Scenario | Use This |
|----------|----------|
| Port cannot be opened | `raise wrap_serial_error(e, port)` |
| Auto-detect found nothing | `raise PortNotFoundError(baud_rate, candidates)` |
| Write while disconnected | `raise NotConnectedError("send LED state")` |
| Config value invalid | `raise wrap_pydantic_error(e, str(path)) from e` |

| Pattern | Code |
|---------|------|
| Log and continue | `@handle_errors(operation_name="send media key", re_raise=False)` |
| Critical section with auto-logging | `with ErrorContext("connect to device"): ...` |

## The Three-Layer Model

```
CLI / TUI            formats error.user_message and error.recovery_hint
    ↑ MixlinkError
Application layer    catches low-level exceptions, converts to MixlinkError
    ↑ SerialException, OSError, ValidationError
Low level            pyserial, psutil, pydantic
```

Protocol noise (malformed lines on the wire) is never an error: the codec
drops it silently.
"""

import logging
from functools import wraps
from typing import Callable, Optional, TypeVar

from .base import MixlinkError
from .config import ConfigFileInvalidError, ConfigValidationError
from .serial import SerialOpenError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def handle_errors(
    *,
    operation_name: str,
    user_notification: Optional[Callable[[str], None]] = None,
    fallback_value: Optional[T] = None,
    re_raise: bool = True,
    log_level: int = logging.ERROR
) -> Callable:
    """
    Decorator for consistent error handling.

    Args:
        operation_name: Name of the operation for logging (e.g., "send media key")
        user_notification: Optional callback to notify user
        fallback_value: Value to return if error occurs and re_raise=False
        re_raise: Whether to re-raise the exception after handling
        log_level: Logging level for the error (default: ERROR)

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)

            except MixlinkError as e:
                logger.log(log_level, f"Failed to {operation_name}: {e.technical_message}")

                if user_notification:
                    user_notification(e.get_full_message())

                if re_raise:
                    raise
                return fallback_value

            except Exception as e:
                logger.log(
                    log_level,
                    f"Unexpected error during {operation_name}: {e}",
                    exc_info=True
                )

                if user_notification:
                    user_notification(f"Error: {e}")

                if re_raise:
                    raise
                return fallback_value

        return wrapper
    return decorator


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Example:
        ```python
        with ErrorContext("connect to device", re_raise=False) as ctx:
            manager.start()

        if ctx.error:
            print(f"Failed: {ctx.error}")
        ```
    """

    def __init__(
        self,
        operation: str,
        logger_instance: Optional[logging.Logger] = None,
        re_raise: bool = True
    ):
        """
        Initialize error context.

        Args:
            operation: Description of the operation
            logger_instance: Logger to use (defaults to module logger)
            re_raise: Whether to re-raise exceptions
        """
        self.operation = operation
        self.logger = logger_instance or logger
        self.re_raise = re_raise
        self.error: Optional[BaseException] = None

    def __enter__(self):
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Exit the context and handle any exceptions.

        Returns:
            True if exception should be suppressed, False otherwise
        """
        if exc_type is None:
            self.logger.debug(f"Completed: {self.operation}")
            return False

        self.error = exc_val

        if isinstance(exc_val, MixlinkError):
            self.logger.error(
                f"Failed to {self.operation}: {exc_val.technical_message}"
            )
        else:
            self.logger.error(
                f"Failed to {self.operation}: {exc_val}",
                exc_info=True
            )

        return not self.re_raise


def wrap_pydantic_error(error: Exception, file_path: str) -> MixlinkError:
    """
    Convert Pydantic validation errors to mixlink exceptions.

    Args:
        error: The Pydantic ValidationError
        file_path: Path to the config file that failed validation

    Returns:
        A ConfigurationError with appropriate type and message
    """
    from pydantic import ValidationError

    error_msg = str(error)

    # Format: "Invalid JSON: <actual error> [type=json_invalid, ..."
    if "Invalid JSON" in error_msg or "json_invalid" in error_msg:
        if "Invalid JSON:" in error_msg:
            parse_error = error_msg.split("Invalid JSON:")[1].split("[type=")[0].strip()
        else:
            parse_error = error_msg

        return ConfigFileInvalidError(file_path, parse_error)

    if isinstance(error, ValidationError):
        errors = error.errors()
        if len(errors) == 1:
            first_error = errors[0]
            field = ".".join(str(loc) for loc in first_error.get('loc', ('unknown',)))
            return ConfigValidationError(
                field=field,
                value=first_error.get('input', None),
                error_msg=first_error.get('msg', 'validation failed'),
                file_path=file_path
            )
        if errors:
            error_lines = []
            for err in errors:
                field = ".".join(str(loc) for loc in err.get('loc', ('unknown',)))
                error_lines.append(f"  - {field}: {err.get('msg', 'validation failed')}")

            return ConfigValidationError(
                field="multiple fields",
                value=None,
                error_msg=f"{len(errors)} validation errors:\n" + "\n".join(error_lines),
                file_path=file_path
            )

    return ConfigValidationError(
        field="unknown",
        value=None,
        error_msg=error_msg,
        file_path=file_path
    )


def wrap_serial_error(error: Exception, port: str) -> SerialOpenError:
    """
    Convert low-level port errors to a SerialOpenError with a useful hint.

    pyserial reports most failures as SerialException wrapping an OSError
    message, so detection works on the message text.

    Args:
        error: The original exception from pyserial or the OS
        port: The port that was being opened

    Returns:
        SerialOpenError with reason and recovery hint filled in
    """
    error_msg = str(error)
    lowered = error_msg.lower()

    if "permission denied" in lowered or "access is denied" in lowered or "errno 13" in lowered:
        return SerialOpenError(
            port,
            original_error=error_msg,
            reason="permission denied",
            recovery_hint=(
                "Another program may be holding the port, or your user lacks access. "
                "On Linux, add your user to the 'dialout' group."
            ),
        )

    if "busy" in lowered or "errno 16" in lowered:
        return SerialOpenError(
            port,
            original_error=error_msg,
            reason="port is busy",
            recovery_hint="Close other programs (serial monitors, IDEs) using this port.",
        )

    if "no such file" in lowered or "errno 2" in lowered or "filenotfound" in lowered:
        return SerialOpenError(port, original_error=error_msg, reason="port does not exist")

    return SerialOpenError(port, original_error=error_msg)


def format_error_for_display(error: Exception) -> tuple[str, Optional[str]]:
    """
    Format an exception for user display.

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, MixlinkError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None
