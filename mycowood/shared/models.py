"""Core data model for telemetry frames."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TelemetryRecord:
    """One validated telemetry frame from the grow chamber controller.

    Numeric readings keep the exact value the device sent, so an integer
    soil percentage stays an integer.
    """
    temperature: float
    humidity: float
    soil_moisture: float
    mode: Optional[str] = None
    alarm_state: Optional[str] = None
    muted: Optional[bool] = None
    temp_alert: Optional[bool] = None
    hum_alert: Optional[bool] = None
    soil_alert: Optional[bool] = None
    captured_at: Optional[datetime] = None

    def to_message(self) -> Dict[str, Any]:
        """Project the record onto the device's own key names for live push."""
        message: Dict[str, Any] = {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "soil": self.soil_moisture,
        }
        optional = (
            ("mode", self.mode),
            ("alarm", self.alarm_state),
            ("muted", self.muted),
            ("tempAlert", self.temp_alert),
            ("humAlert", self.hum_alert),
            ("soilAlert", self.soil_alert),
        )
        for key, value in optional:
            if value is not None:
                message[key] = value
        if self.captured_at is not None:
            message["capturedAt"] = self.captured_at.isoformat()
        return message

    @property
    def has_alert(self) -> bool:
        """True if any channel alert flag is raised."""
        return bool(self.temp_alert or self.hum_alert or self.soil_alert)
