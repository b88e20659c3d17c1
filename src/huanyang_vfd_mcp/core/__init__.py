"""Worker threads: command dispatch, telemetry and polling."""

from .dispatcher import Dispatcher
from .poller import Poller
from .telemetry import TelemetryReader
