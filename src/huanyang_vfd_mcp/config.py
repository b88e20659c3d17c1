"""Default settings and the drive configuration object."""

from __future__ import annotations

from dataclasses import dataclass, field

from .protocol.parser import DEFAULT_SILENCE_GAP
from .transport.serial_connection import SerialConfig

# Calibration for the author's spindle, measured from the drive display while
# spinning. Set to 1.0 and read the display to calibrate another motor.
DEFAULT_HERTZ_PER_RPM = 3.47222
DEFAULT_POLL_INTERVAL = 0.750
QUIET_PERIOD = 0.110
SILENCE_GAP = DEFAULT_SILENCE_GAP
QUEUE_CAPACITY = 10
# Longer than a timed-out serial write plus one quiet period.
JOIN_TIMEOUT = 2.0


@dataclass
class DriveConfig:
    """Everything ``VfdDrive.open`` needs.

    Times are in seconds.
    """

    serial: SerialConfig = field(default_factory=SerialConfig)
    hertz_per_rpm: float = DEFAULT_HERTZ_PER_RPM
    poll_interval: float = DEFAULT_POLL_INTERVAL
    quiet_period: float = QUIET_PERIOD
    silence_gap: float = SILENCE_GAP
    queue_capacity: int = QUEUE_CAPACITY
    resync: bool = False
    join_timeout: float = JOIN_TIMEOUT

    def __post_init__(self) -> None:
        if self.hertz_per_rpm <= 0:
            raise ValueError(f"hertz_per_rpm must be positive, got {self.hertz_per_rpm}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.quiet_period < 0:
            raise ValueError(f"quiet_period must not be negative, got {self.quiet_period}")
        if self.queue_capacity < 1:
            raise ValueError(f"queue_capacity must be at least 1, got {self.queue_capacity}")

    @property
    def online_window(self) -> float:
        """Age after which the last reply no longer counts as online."""
        return 2 * self.poll_interval
