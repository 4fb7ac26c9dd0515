"""
Event bridging between emitters and user callbacks.

Every listener attached to an engine, a live region or the controller itself
is represented by a :class:`Subscription` that owns its disposer.  Components
collect their subscriptions in a :class:`SubscriptionSet` and dispose the whole
set on teardown.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

LOG = logging.getLogger(__name__)

Handler = Callable[..., None]
CallbackLookup = Callable[[], Optional[Callable[["EventPayload"], None]]]


class EventEmitter:
    """
    Ordered multi-handler event emitter with ``on``/``un`` semantics.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def un(self, event: str, handler: Optional[Handler] = None) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            return
        if handler is None:
            handlers.clear()
        else:
            try:
                handlers.remove(handler)
            except ValueError:
                pass
        if not handlers:
            self._handlers.pop(event, None)

    def un_all(self) -> None:
        self._handlers.clear()

    def fire_event(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            handler(*args)

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, ()))
        return sum(len(handlers) for handlers in self._handlers.values())


@dataclass(frozen=True)
class EventPayload:
    """
    Normalised payload delivered to user callbacks.
    """

    original_args: Tuple[Any, ...]
    engine: Any
    region: Any = None

    def to_dict(self) -> dict:
        payload: Dict[str, Any] = {"originalArgs": list(self.original_args)}
        if self.region is not None:
            payload["region"] = getattr(self.region, "id", None)
        return payload


class Subscription:
    """
    A single (emitter, event, handler) registration.

    :meth:`dispose` detaches the handler from the emitter exactly once; later
    calls are ignored.
    """

    def __init__(self, emitter: Any, event: str, handler: Handler) -> None:
        self.emitter = emitter
        self.event = event
        self.handler = handler
        self._disposed = False
        self._on_dispose: list[Callable[["Subscription"], None]] = []

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add_dispose_hook(self, hook: Callable[["Subscription"], None]) -> None:
        self._on_dispose.append(hook)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        try:
            self.emitter.un(self.event, self.handler)
        finally:
            hooks, self._on_dispose = self._on_dispose, []
            for hook in hooks:
                hook(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<Subscription {self.event!r} {state}>"


class SubscriptionSet:
    """
    Tracks the subscriptions owned by one component.
    """

    def __init__(self) -> None:
        self._items: Dict[int, Subscription] = {}

    def add(self, subscription: Subscription) -> Subscription:
        if subscription.disposed:
            return subscription
        key = id(subscription)
        self._items[key] = subscription
        subscription.add_dispose_hook(lambda sub: self._items.pop(id(sub), None))
        return subscription

    def dispose_all(self) -> int:
        """
        Dispose every tracked subscription and return how many were active.
        """

        items = list(self._items.values())
        self._items.clear()
        for subscription in items:
            subscription.dispose()
        return len(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._items.values()))

    def __bool__(self) -> bool:
        return bool(self._items)


def deliver(callback: Callable[[EventPayload], None], payload: EventPayload, event: str) -> None:
    try:
        callback(payload)
    except Exception:  # pragma: no cover - user callbacks must not break the emitter
        LOG.exception("Callback for event '%s' failed.", event)


def bridge(
    emitter: Any,
    event: str,
    callback: Callable[[EventPayload], None] | CallbackLookup,
    *,
    engine: Any = None,
    region: Any = None,
    lookup: bool = False,
) -> Subscription:
    """
    Subscribe ``event`` on ``emitter`` and forward every invocation.

    The callback receives an :class:`EventPayload` wrapping the raw emitter
    arguments.  With ``lookup=True`` the callback argument is a zero-argument
    function resolving the current user callback at delivery time, so slots
    can change between prop updates without rewiring the emitter.
    """

    def handler(*original_args: Any) -> None:
        target = callback() if lookup else callback
        if target is None:
            return
        deliver(target, EventPayload(tuple(original_args), engine, region), event)

    emitter.on(event, handler)
    LOG.debug("Bridged event '%s' on %r", event, emitter)
    return Subscription(emitter, event, handler)


def listen(emitter: Any, event: str, handler: Handler) -> Subscription:
    """
    Subscribe a raw handler (no payload normalisation).
    """

    emitter.on(event, handler)
    return Subscription(emitter, event, handler)


def listen_once(emitter: Any, event: str, handler: Handler) -> Subscription:
    """
    Subscribe a raw handler that disposes itself after its first invocation.
    """

    subscription: Optional[Subscription] = None

    def one_shot(*args: Any) -> None:
        if subscription is None or subscription.disposed:
            return
        subscription.dispose()
        handler(*args)

    emitter.on(event, one_shot)
    subscription = Subscription(emitter, event, one_shot)
    return subscription


def bridge_once(
    emitter: Any,
    event: str,
    callback: Callable[[EventPayload], None],
    *,
    engine: Any = None,
) -> Subscription:
    """
    Like :func:`bridge` but the subscription disposes itself after firing once.
    """

    def handler(*original_args: Any) -> None:
        deliver(callback, EventPayload(tuple(original_args), engine), event)

    return listen_once(emitter, event, handler)


__all__ = [
    "EventEmitter",
    "EventPayload",
    "Subscription",
    "SubscriptionSet",
    "bridge",
    "bridge_once",
    "deliver",
    "listen",
    "listen_once",
]
