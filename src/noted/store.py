from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

import httpx

from noted.api import ApiClient, ApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class Readable(Generic[T]):
    """A value that notifies subscribers whenever it changes."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: list[Subscriber] = []

    def get(self) -> T:
        return self._value

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        self._subscribers.append(callback)
        callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _set(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            callback(value)


class Writable(Readable[T]):
    def set(self, value: T) -> None:
        self._set(value)

    def update(self, fn: Callable[[T], T]) -> None:
        self._set(fn(self._value))


class Derived(Readable[T]):
    """Read-only view recomputed from its sources on every source change.

    Call ``detach()`` to stop following the sources; the last value stays.
    """

    def __init__(self, sources: Readable | Sequence[Readable], fn: Callable[..., T]) -> None:
        self._single = isinstance(sources, Readable)
        self._sources: list[Readable] = [sources] if self._single else list(sources)
        self._fn = fn
        super().__init__(self._compute())
        self._ready = False
        self._unsubscribers: list[Unsubscribe] = [
            source.subscribe(self._recompute) for source in self._sources
        ]
        self._ready = True

    def _compute(self) -> T:
        values = [s.get() for s in self._sources]
        return self._fn(values[0]) if self._single else self._fn(values)

    def _recompute(self, _value: Any) -> None:
        # subscribe() fires immediately; the initial value is already computed
        if self._ready:
            self._set(self._compute())

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []


class RequestSequencer:
    """Monotonic request tokens. Only responses newer than the last applied one are applied."""

    def __init__(self) -> None:
        self.issued = 0
        self.applied = 0

    def next(self) -> int:
        self.issued += 1
        return self.issued

    def accept(self, token: int) -> bool:
        if token <= self.applied:
            return False
        self.applied = token
        return True

    def reset(self) -> None:
        # Tokens keep counting so responses issued before the reset stay stale.
        self.applied = self.issued


class FetchGate:
    """Suppresses redundant fetches.

    A non-forced fetch is skipped while another one is in flight or when the
    last successful fetch finished less than ``cooldown`` seconds ago.
    """

    def __init__(self, cooldown: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.cooldown = cooldown
        self.clock = clock
        self.in_flight = 0
        self.last_success: float | None = None

    def allows(self, force: bool = False) -> bool:
        if force:
            return True
        if self.in_flight:
            return False
        if self.last_success is not None and self.clock() - self.last_success < self.cooldown:
            return False
        return True

    def begin(self) -> None:
        self.in_flight += 1

    def end(self, success: bool) -> float | None:
        """Finish a fetch. Only a response that was applied counts as a success."""
        self.in_flight -= 1
        if success:
            now = self.clock()
            if self.last_success is not None and now <= self.last_success:
                # keep successive fetch times strictly increasing on coarse clocks
                now = self.last_success + 1e-6
            self.last_success = now
        return self.last_success

    def reset(self) -> None:
        self.last_success = None


FETCH_ERRORS = (ApiError, httpx.HTTPError)


class CollectionStore(Generic[T]):
    """Last-fetched collection plus ``loading`` and ``error`` flags.

    Nothing is fetched automatically. Fetch failures are logged and stored in
    ``error``; mutations let errors propagate to the caller.
    """

    name = "collection"

    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.items: Writable[list[T]] = Writable([])
        self.loading: Writable[bool] = Writable(False)
        self.error: Writable[str | None] = Writable(None)
        self._sequencers: dict[Writable, RequestSequencer] = {}
        self._pending = 0

    async def _fetch(self, call: Callable[[], Awaitable[Any]], target: Writable | None = None) -> bool:
        """Run *call* and store its result in *target* (``items`` by default).

        Returns True when the response was applied.
        """
        target = self.items if target is None else target
        sequencer = self._sequencers.setdefault(target, RequestSequencer())
        token = sequencer.next()
        self._pending += 1
        self.loading.set(True)
        self.error.set(None)
        try:
            result = await call()
        except FETCH_ERRORS as exc:
            logger.warning("Failed to load %s: %s", self.name, exc)
            if sequencer.accept(token):
                self.error.set(str(exc))
            return False
        else:
            if not sequencer.accept(token):
                logger.debug("Discarding stale %s response %d", self.name, token)
                return False
            target.set(result)
            return True
        finally:
            self._pending -= 1
            if not self._pending:
                self.loading.set(False)

    def _replace(self, record: Any) -> None:
        self.items.update(lambda rows: [record if r.id == record.id else r for r in rows])

    def clear(self) -> None:
        for sequencer in self._sequencers.values():
            sequencer.reset()
        self.items.set([])
        self.error.set(None)
