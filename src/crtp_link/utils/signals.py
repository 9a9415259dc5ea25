"""
Single-subscriber observer signals.

Each signal holds at most one callback. Subscribing again replaces the
previous callback. Callback failures are logged and never propagate back
into the emitter (the UDP receive path or a periodic timer).
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    """Observer slot with at most one active subscriber."""

    def __init__(self, name: str):
        self.name = name
        self._callback: Callable[[T], None] | None = None
        self.emit_count = 0
        self.failure_count = 0

    @property
    def has_subscriber(self) -> bool:
        return self._callback is not None

    def subscribe(self, callback: Callable[[T], None] | None) -> None:
        """Install the subscriber, replacing any previous one. None unsubscribes."""
        if self._callback is not None and callback is not None:
            logger.debug(f"{self.name}: replacing existing subscriber")
        self._callback = callback

    def unsubscribe(self) -> None:
        self._callback = None

    def emit(self, value: T) -> None:
        """Deliver a value to the subscriber, if any."""
        self.emit_count += 1
        if self._callback is None:
            return
        try:
            self._callback(value)
        except Exception as e:
            self.failure_count += 1
            logger.error(f"Error in {self.name} callback: {e}", exc_info=True)
