"""Observable values and broadcast channels for asyncio.

Two kinds of streams are used throughout the service:

- Observables hold a current value. Readers can take the value now
  (``value`` / ``first()``) or iterate it with ``async for``, which yields the
  current value first and then every distinct change. Iteration is
  conflated: a slow reader only sees the latest value.
- Broadcast channels carry discrete items with no history. Every subscriber
  registered at send time gets the item; items sent with nobody listening are
  lost.

All of these are meant to be used from a single event loop.
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

_UNSET: Any = object()


class Observable(Generic[T]):
    """A value that can be read now and watched for changes."""

    @property
    def value(self) -> T:
        raise NotImplementedError

    def _attach(self, waker: asyncio.Event) -> None:
        raise NotImplementedError

    def _detach(self, waker: asyncio.Event) -> None:
        raise NotImplementedError

    async def first(self) -> T:
        """Current value."""
        return self.value

    async def changes(self) -> AsyncIterator[T]:
        """Yield the current value, then each distinct new value."""
        waker = asyncio.Event()
        self._attach(waker)
        try:
            last = _UNSET
            while True:
                current = self.value
                if last is _UNSET or current != last:
                    last = current
                    yield current
                await waker.wait()
                waker.clear()
        finally:
            self._detach(waker)

    def __aiter__(self) -> AsyncIterator[T]:
        return self.changes()

    def map(self, transform: Callable[[T], R]) -> "DerivedValue[R]":
        """Observable of ``transform(value)``."""
        return DerivedValue((self,), transform)


class ObservableValue(Observable[T]):
    """Mutable observable holding a single value."""

    def __init__(self, initial: T):
        self._value = initial
        self._wakers: set[asyncio.Event] = set()

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Replace the value; watchers are only woken when it actually changes.

        Returns:
            True if the value changed
        """
        if value == self._value:
            return False
        self._value = value
        for waker in list(self._wakers):
            waker.set()
        return True

    def _attach(self, waker: asyncio.Event) -> None:
        self._wakers.add(waker)

    def _detach(self, waker: asyncio.Event) -> None:
        self._wakers.discard(waker)

    def __repr__(self) -> str:
        return f"ObservableValue({self._value!r})"


class DerivedValue(Observable[T]):
    """Observable computed from other observables.

    The value is recomputed from the sources on every read, never cached.
    """

    def __init__(self, sources: Iterable[Observable[Any]], transform: Callable[..., T]):
        self._sources = tuple(sources)
        self._transform = transform

    @property
    def value(self) -> T:
        return self._transform(*(source.value for source in self._sources))

    def _attach(self, waker: asyncio.Event) -> None:
        for source in self._sources:
            source._attach(waker)

    def _detach(self, waker: asyncio.Event) -> None:
        for source in self._sources:
            source._detach(waker)


def combine_latest(*sources: Observable[Any], transform: Callable[..., T]) -> DerivedValue[T]:
    """Combine observables into one whose value is ``transform(*values)``.

    Example:
        total = combine_latest(a, b, transform=lambda x, y: x + y)
    """
    if not sources:
        raise ValueError("combine_latest needs at least one source")
    return DerivedValue(sources, transform)


_CLOSED: Any = object()


class Subscription(Generic[T]):
    """A single listener on a :class:`BroadcastChannel`.

    Registered as soon as it is created, so nothing sent after
    ``subscribe()`` returns is missed. Iterate with ``async for``; close with
    ``close()``, ``await aclose()`` or ``async with``.
    """

    def __init__(self, channel: "BroadcastChannel[T]"):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, item: T) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def close(self) -> None:
        """Stop receiving items; a pending ``async for`` ends."""
        if self._closed:
            return
        self._closed = True
        self._channel._remove(self)
        self._queue.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        self.close()

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class BroadcastChannel(Generic[T]):
    """Fan-out of items to every current subscriber, without history.

    ``send`` never blocks and never raises: each subscriber has its own
    unbounded queue, so a slow or failing listener does not affect the sender
    or the other listeners. Per-subscriber order is send order.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscription[T]] = []

    def subscribe(self) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(self)
        self._subscribers.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def send(self, item: T) -> int:
        """Deliver ``item`` to all subscribers.

        Returns:
            Number of subscribers the item was delivered to
        """
        subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription._deliver(item)
        return len(subscribers)

    def close(self) -> None:
        """Close every subscription."""
        for subscription in list(self._subscribers):
            subscription.close()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


async def first_matching(
    observable: Observable[T],
    predicate: Callable[[T], bool],
    timeout: Optional[float] = None,
) -> T:
    """Wait until the observable holds a value matching ``predicate``.

    Raises:
        TimeoutError: If no matching value is seen within ``timeout`` seconds
    """

    async def _wait() -> T:
        async for value in observable:
            if predicate(value):
                return value
        raise RuntimeError("observable iteration ended")

    return await asyncio.wait_for(_wait(), timeout)
