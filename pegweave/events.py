"""
Synchronous observer lists used by :py:class:`.ParsingContext` to publish
content, expectation and rule lifecycle events.
"""

from typing import Callable, Generic, List, TypeVar


__all__ = [
    "Event",
]


T = TypeVar("T")


class Event(Generic[T]):
    """
    An ordered list of callbacks. :py:meth:`fire` calls every subscriber
    synchronously, in subscription order, with the event payload.
    """

    _subscribers: List[Callable[[T], None]]

    def __init__(self) -> None:
        self._subscribers = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[T], None]:
        """
        Add a subscriber. Returns the callback so this method may be used as a
        decorator.
        """
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """
        Remove a subscriber. Raises :py:exc:`ValueError` if the callback is not
        subscribed.
        """
        self._subscribers.remove(callback)

    def fire(self, payload: T) -> None:
        # NB: Iterate over a copy so subscribers may unsubscribe themselves
        for callback in list(self._subscribers):
            callback(payload)

    def __len__(self) -> int:
        return len(self._subscribers)
