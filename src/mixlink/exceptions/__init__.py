"""
Custom exception hierarchy for mixlink.

## Exception Hierarchy

```
MixlinkError (base)
├── SerialTransportError
│   ├── SerialOpenError
│   ├── SerialWriteError
│   └── PortNotFoundError
├── ConnectionStateError
│   ├── NotConnectedError
│   └── AlreadyConnectedError
└── ConfigurationError
    ├── ConfigFileInvalidError
    └── ConfigValidationError
```

All custom exceptions inherit from `MixlinkError`, which provides:

- `user_message`: Human-friendly message for display to users
- `technical_message`: Detailed message for logging
- `recoverable`: Whether the error can be recovered from
- `recovery_hint`: Optional suggestion for how to fix the issue

### Example: Port In Use

```python
from mixlink.exceptions import wrap_serial_error

try:
    handle = serial.Serial(port, baudrate=9600, timeout=0.1)
except serial.SerialException as e:
    raise wrap_serial_error(e, port) from e

# User sees: "Could not open serial port /dev/ttyUSB0: permission denied"
```

See `mixlink.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import MixlinkError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .handlers import (
    ErrorContext,
    format_error_for_display,
    handle_errors,
    wrap_pydantic_error,
    wrap_serial_error,
)
from .serial import (
    AlreadyConnectedError,
    ConnectionStateError,
    NotConnectedError,
    PortNotFoundError,
    SerialOpenError,
    SerialTransportError,
    SerialWriteError,
)

__all__ = [
    # Base
    "MixlinkError",
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Serial
    "AlreadyConnectedError",
    "ConnectionStateError",
    "NotConnectedError",
    "PortNotFoundError",
    "SerialOpenError",
    "SerialTransportError",
    "SerialWriteError",
    # Handlers
    "ErrorContext",
    "format_error_for_display",
    "handle_errors",
    "wrap_pydantic_error",
    "wrap_serial_error",
]
