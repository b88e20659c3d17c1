"""Periodic output frequency query."""

from __future__ import annotations

import logging
import threading

from ..protocol.commands import QUERY_TOKEN
from ..utils.threads import StoppableThread
from .dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class Poller(StoppableThread):
    """Submits a frequency query every ``interval`` seconds.

    Queries compete with user commands for queue space; a query that does
    not fit is dropped and the next tick tries again.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        interval: float,
        stop_event: threading.Event | None = None,
    ) -> None:
        super().__init__(name="VfdPoller", stop_event=stop_event)
        self._dispatcher = dispatcher
        self._interval = interval

    def run(self) -> None:
        while not self.wait(self._interval):
            if not self._dispatcher.submit(QUERY_TOKEN):
                logger.debug("Queue full, skipped frequency poll")
