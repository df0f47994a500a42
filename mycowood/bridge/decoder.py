"""Frame decoder for the controller's JSON line protocol.

The controller prints one JSON object per line. While it boots it also prints
status lines and half-written frames, so anything that does not decode into a
complete reading is dropped quietly rather than treated as an error.
"""

import json
import logging
import math
from datetime import datetime
from typing import Any, Optional, Union

from mycowood.shared.models import TelemetryRecord

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("temperature", "humidity", "soil")


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass; a JSON true is not a reading
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        # JSON integers are unbounded; one too large for a float is not a reading
        return None
    if not finite:
        return None
    return value


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def decode(
    raw_line: Union[bytes, str],
    captured_at: Optional[datetime] = None,
) -> Optional[TelemetryRecord]:
    """Decode one line from the device into a TelemetryRecord.

    Args:
        raw_line: One line as read from the serial port, terminator included
            or not.
        captured_at: Receipt time to stamp on the record.

    Returns:
        The record, or None if the line is not a complete telemetry frame.
    """
    if isinstance(raw_line, (bytes, bytearray)):
        text = bytes(raw_line).decode("utf-8", errors="ignore")
    else:
        text = raw_line
    text = text.strip()
    if not text:
        return None

    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return None

    if not isinstance(payload, dict):
        return None

    readings = [_number(payload.get(key)) for key in REQUIRED_KEYS]
    if any(value is None for value in readings):
        logger.debug(f"Frame without complete readings: {text[:80]}")
        return None
    temperature, humidity, soil = readings

    return TelemetryRecord(
        temperature=temperature,
        humidity=humidity,
        soil_moisture=soil,
        mode=_text(payload.get("mode")),
        alarm_state=_text(payload.get("alarm")),
        muted=_flag(payload.get("muted")),
        temp_alert=_flag(payload.get("tempAlert")),
        hum_alert=_flag(payload.get("humAlert")),
        soil_alert=_flag(payload.get("soilAlert")),
        captured_at=captured_at,
    )
