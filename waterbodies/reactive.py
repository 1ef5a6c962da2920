"""
Stage - explicit push-based recompute primitive.

Each pipeline stage owns its last emitted value and a list of subscriber callbacks.
A stage re-emits only when its comparison key changes.
"""
from __future__ import annotations

from typing import Any, Callable, Generic, List, Optional, TypeVar

from loguru import logger

T = TypeVar("T")

Callback = Callable[[Any], None]


class Stage(Generic[T]):
    """Holds the current value of one pipeline stage and notifies subscribers."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._value: Optional[T] = None
        self._last_key: Any = None
        self._subscribers: List[Callback] = []

    @property
    def value(self) -> Optional[T]:
        """The latest emitted value (None before the first emission)."""
        return self._value

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """
        Register a callback invoked with each new value.

        A subscriber joining after the first emission is called once immediately
        with the current value.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)
        if self._value is not None:
            callback(self._value)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit_if_changed(self, value: T, key: Any) -> bool:
        """
        Store and publish `value` unless `key` equals the key of the last emission.

        The value is replaced in a single assignment, so readers see either the
        previous complete value or the new one.
        """
        if self._value is not None and key == self._last_key:
            logger.debug(f"{self.name}: suppressed emission, key unchanged ({key})")
            return False
        self._value = value
        self._last_key = key
        logger.debug(f"{self.name}: emitting (key={key}) to {len(self._subscribers)} subscribers")
        for callback in list(self._subscribers):
            callback(value)
        return True
