"""Minimal change-notification stream.

A Signal holds subscriber callbacks and calls each of them with the
emitted value, in subscription order. Subscribers get a Subscription back
and call ``dispose()`` on teardown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Subscription(Generic[T]):
    """Handle returned by Signal.connect."""

    signal: Optional["Signal[T]"]
    callback: Callable[[T], None]

    @property
    def active(self) -> bool:
        return self.signal is not None

    def dispose(self) -> None:
        """Stop receiving values. Safe to call more than once."""
        if self.signal is not None:
            self.signal.disconnect(self.callback)
            self.signal = None


@dataclass
class Signal(Generic[T]):
    """A named stream of values with subscriber callbacks."""

    name: str
    _callbacks: list[Callable[[T], None]] = field(default_factory=list)

    def connect(self, callback: Callable[[T], None]) -> Subscription[T]:
        """Register a callback and return its subscription."""
        self._callbacks.append(callback)
        return Subscription(signal=self, callback=callback)

    def disconnect(self, callback: Callable[[T], None]) -> bool:
        """Remove a callback.

        Returns:
            True if the callback was connected.
        """
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return False
        return True

    def disconnect_all(self) -> None:
        self._callbacks.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def emit(self, value: T) -> None:
        """Deliver a value to every subscriber.

        A failing subscriber is logged and does not prevent delivery to the
        remaining ones.
        """
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.exception(f"Subscriber to '{self.name}' raised")
