from __future__ import annotations

from .models import Actuator


class ManualControlRejected(Exception):
    """Raised when an actuator is toggled by hand while automation owns it."""

    def __init__(self, actuator: Actuator) -> None:
        super().__init__(
            f"Cannot toggle {actuator.value} while automation is enabled; "
            "turn automation off first"
        )
        self.actuator = actuator


class ReportBusy(Exception):
    """Raised when a report is requested while another is still outstanding."""
