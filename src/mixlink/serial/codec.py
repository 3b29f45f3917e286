"""Wire protocol encoding and decoding.

Inbound (device -> host), one message per line:
    ``<v0>|<v1>|...|<vN-1>\\r\\n``   slider telemetry, each value 0-1023
    ``#B<id>\\n``                     button press

Outbound (host -> device), one command per line:
    ``#L<index>:<0|1>\\n``            single LED state
    ``#LS:<0|1>,<0|1>,...\\n``        every LED at once
    ``#AP:<peak>:<label>,...\\n``     audio peak (0-100) and short label per slider

All functions here are pure. Decoding never raises: anything that is not a
valid message is reported as ``None`` and dropped by the caller.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TELEMETRY_PATTERN = re.compile(r"^\d{1,4}(\|\d{1,4})*\r\n$")

MAX_RAW_VALUE = 1023
MAX_PEAK = 100

BUTTON_PREFIX = "#B"
LED_PREFIX = "#L"
ALL_LEDS_PREFIX = "#LS:"
AUDIO_PEAKS_PREFIX = "#AP:"

_VOWELS = frozenset("aeiouAEIOU")


@dataclass(frozen=True)
class TelemetryFrame:
    """One line of raw slider samples."""

    values: tuple[int, ...]


@dataclass(frozen=True)
class ButtonMessage:
    """A decoded button press."""

    button_id: str


# =================================================================
# Decoding (device -> host)
# =================================================================


def is_telemetry_line(line: str) -> bool:
    """Check a complete line (terminator included) against the telemetry pattern."""
    return TELEMETRY_PATTERN.match(line) is not None


def decode_line(line: str) -> TelemetryFrame | ButtonMessage | None:
    """
    Decode one complete line from the device.

    Args:
        line: A line as produced by LineFramer, terminator included

    Returns:
        TelemetryFrame, ButtonMessage, or None if the line is not a valid message
    """
    if line.startswith(BUTTON_PREFIX):
        button_id = line[len(BUTTON_PREFIX) :].replace("\r", "").replace("\n", "")
        if not button_id:
            return None
        return ButtonMessage(button_id)

    if not is_telemetry_line(line):
        return None

    values = tuple(int(part) for part in line.rstrip("\r\n").split("|"))

    # Garbage on the first value usually means we joined mid-line
    if values[0] > MAX_RAW_VALUE:
        logger.debug(f"Dropping telemetry with out-of-range first value: {line!r}")
        return None

    return TelemetryFrame(values)


# =================================================================
# Encoding (host -> device)
# =================================================================


def encode_led_state(index: int, on: bool) -> str:
    """Encode a single LED state command."""
    return f"{LED_PREFIX}{index}:{int(bool(on))}\n"


def encode_all_led_states(states: Mapping[int, bool], num_sliders: int) -> str:
    """
    Encode every LED state as one batched command.

    Args:
        states: LED state per slider index; missing indices are off
        num_sliders: Number of entries to send
    """
    flags = ",".join("1" if states.get(i, False) else "0" for i in range(num_sliders))
    return f"{ALL_LEDS_PREFIX}{flags}\n"


def encode_audio_peaks(peaks: Mapping[int, int], names: Mapping[int, str], num_sliders: int) -> str:
    """
    Encode per-slider audio peaks and short labels for the device display.

    Args:
        peaks: Peak level per slider index (clamped to 0-100; missing is 0)
        names: Full app name per slider index (abbreviated with shorten_app_name)
        num_sliders: Number of entries to send
    """
    entries = []
    for i in range(num_sliders):
        peak = max(0, min(MAX_PEAK, int(peaks.get(i, 0))))
        entries.append(f"{peak}:{shorten_app_name(names.get(i, ''))}")
    return f"{AUDIO_PEAKS_PREFIX}{','.join(entries)}\n"


def shorten_app_name(name: str) -> str:
    """
    Abbreviate an app name to at most 4 characters for the device display.

    Consonants are taken first, in order. With more than 4 consonants the
    first three and the last one are kept, so the label keeps the word's
    ending. Vowels fill any remaining slots in order of appearance. A name
    that still comes up short falls back to its first 4 characters when it
    has that many.

    Examples:
        >>> shorten_app_name("chrome")
        'chrm'
        >>> shorten_app_name("discord")
        'dscd'
        >>> shorten_app_name("ai")
        'ai'
    """
    consonants = [c for c in name if c not in _VOWELS]
    result = consonants[:3] + consonants[-1:] if len(consonants) > 4 else consonants

    if len(result) < 4:
        for c in name:
            if c in _VOWELS:
                result.append(c)
                if len(result) == 4:
                    break

    if len(result) < 4 and len(name) >= 4:
        return name[:4]

    return "".join(result)


# =================================================================
# Device-side decoding (used for loopback testing and diagnostics)
# =================================================================


def decode_led_state(line: str) -> tuple[int, bool] | None:
    """Decode a ``#L<index>:<0|1>`` command, or None if malformed."""
    if not line.startswith(LED_PREFIX) or line.startswith(ALL_LEDS_PREFIX):
        return None
    body = line[len(LED_PREFIX) :].rstrip("\r\n")
    index, sep, flag = body.partition(":")
    if not sep or not index.isdigit() or flag not in ("0", "1"):
        return None
    return int(index), flag == "1"


def decode_all_led_states(line: str) -> list[bool] | None:
    """Decode a ``#LS:`` command into a boolean vector, or None if malformed."""
    if not line.startswith(ALL_LEDS_PREFIX):
        return None
    body = line[len(ALL_LEDS_PREFIX) :].rstrip("\r\n")
    if not body:
        return []
    flags = body.split(",")
    if any(flag not in ("0", "1") for flag in flags):
        return None
    return [flag == "1" for flag in flags]


def decode_audio_peaks(line: str) -> list[tuple[int, str]] | None:
    """Decode an ``#AP:`` command into (peak, label) pairs, or None if malformed."""
    if not line.startswith(AUDIO_PEAKS_PREFIX):
        return None
    body = line[len(AUDIO_PEAKS_PREFIX) :].rstrip("\r\n")
    if not body:
        return []
    entries = []
    for entry in body.split(","):
        peak, sep, label = entry.partition(":")
        if not sep or not peak.isdigit():
            return None
        entries.append((int(peak), label))
    return entries
