"""
Diagnostic message sinks for Server.

A Server reports what it does (connections, raw requests and responses,
handler failures) through a single `log_message(message)` call. Anything
with that method can be plugged in:

    server.logger = StandardLogger()        # → logging, at INFO
    server.logger = NullLogger()            # → discarded (default)

    class ListLogger:                       # → your own sink
        def __init__(self):
            self.messages = []
        def log_message(self, message):
            self.messages.append(message)
"""

import logging
from typing import Protocol, runtime_checkable


@runtime_checkable
class Logger(Protocol):
    """Anything that can record a diagnostic message."""

    def log_message(self, message: str) -> None:
        ...


class NullLogger:
    """Discards every message."""

    def log_message(self, message: str) -> None:
        pass


class StandardLogger:
    """
    Forwards messages to the standard library `logging` module.

    Args:
        name: Name of the logging.Logger to write to.
        level: Level every message is logged at.
    """

    def __init__(self, name: str = "simplehttp", level: int = logging.INFO):
        self._logger = logging.getLogger(name)
        self._level = level

    def log_message(self, message: str) -> None:
        self._logger.log(self._level, message)
