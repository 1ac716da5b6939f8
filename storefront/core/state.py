import logging
from typing import Callable, Generic, List, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class StateHolder(Generic[T]):
    """Current value plus the callbacks interested in its changes.

    New subscribers are handed the current value straight away, so a service
    that follows another one (the cart following the signed-in user) is
    initialised by the act of subscribing.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> T:
        return self._value

    def next(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"State subscriber {callback!r} failed: {e}", exc_info=True)

    def subscribe(self, callback: Subscriber, replay: bool = True) -> Callable[[], None]:
        self._subscribers.append(callback)
        if replay:
            callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
