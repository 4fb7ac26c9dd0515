"""
Lifecycle controller keeping declarative player props in sync with the engine.

The controller owns the engine instance from ``init`` to ``destroy``.  Prop
updates are diffed into the smallest set of imperative engine commands, and
engine events flow back as position updates and user callbacks.  Positions are
expressed in seconds on the declarative side and as a normalised progress in
``[0, 1]`` on the engine side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from .bridge import (
    EventEmitter,
    EventPayload,
    Subscription,
    SubscriptionSet,
    bridge,
    deliver,
    listen,
    listen_once,
)
from .engine import Engine
from .events import ENGINE_EVENTS, POS_CHANGE
from .media import (
    ElementResolver,
    SourceKind,
    classify_source,
    resolve_media_element,
)
from .props import PlayerProps
from .runtime.scheduling import (
    RESIZE_THROTTLE_SECONDS,
    AsyncioScheduler,
    ResizeSignal,
    Scheduler,
    Throttle,
)

LOG = logging.getLogger(__name__)

READY_NOTIFICATION = "ready"


class LifecycleState(str, Enum):
    """Engine lifecycle as seen by the controller."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DESTROYED = "destroyed"


@dataclass
class PlaybackSnapshot:
    """
    Playback state owned by the controller.

    ``last_reported_position`` only ever changes on engine position events and
    is what keeps engine-reported positions from being seeked to again.
    """

    is_ready: bool = False
    position: float = 0.0
    last_reported_position: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "isReady": bool(self.is_ready),
            "position": float(self.position),
            "lastReportedPosition": self.last_reported_position,
        }


def seconds_to_progress(seconds: float, duration: float) -> float:
    """
    Convert a position in seconds to the engine's ``[0, 1]`` progress.
    """

    if not duration or duration <= 0:
        return 0.0
    return float(seconds) / float(duration)


def progress_to_seconds(progress: float, duration: float) -> float:
    if not duration or duration <= 0:
        return 0.0
    return float(progress) * float(duration)


def _changed(previous: Any, current: Any) -> bool:
    if previous is current:
        return False
    try:
        return bool(previous != current)
    except (TypeError, ValueError):
        # array-likes without a scalar truth value
        return True


class LifecycleController:
    """
    Synchronise a :class:`PlayerProps` stream with an imperative engine.

    Parameters
    ----------
    engine:
        Engine instance.  The controller is its only owner and destroys it on
        :meth:`unmount`.
    props:
        Initial declarative props.
    container:
        Opaque host container handle merged into the engine options.
    resolver:
        Resolves media element selectors.
    resize_signal, scheduler:
        Environment used for the throttled responsive redraw.
    """

    def __init__(
        self,
        engine: Engine,
        props: Optional[PlayerProps] = None,
        *,
        container: Any = None,
        resolver: Optional[ElementResolver] = None,
        resize_signal: Optional[ResizeSignal] = None,
        scheduler: Optional[Scheduler] = None,
        resize_delay: float = RESIZE_THROTTLE_SECONDS,
    ) -> None:
        self._engine = engine
        self.props = props if props is not None else PlayerProps()
        self.container = container
        self._resolver = resolver
        self.resize_signal = resize_signal if resize_signal is not None else ResizeSignal()
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._resize_throttle = Throttle(self._scheduler, resize_delay, self._handle_resize)
        self._resize_token: Optional[int] = None

        self.state = LifecycleState.UNINITIALIZED
        self.snapshot = PlaybackSnapshot()
        self.source_loading = False

        self._subscriptions = SubscriptionSet()
        self._pending_seek: Optional[Subscription] = None
        self._notifier = EventEmitter()

    # ------------------------------------------------------------------ accessors

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def is_ready(self) -> bool:
        return self.snapshot.is_ready

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    @property
    def resize_attached(self) -> bool:
        return self._resize_token is not None

    def on_ready(self, callback: Callable[[Engine], None]) -> Subscription:
        """
        Register ``callback`` to run after the controller has processed each
        engine ``ready`` event.  The callback receives the engine.
        """

        return listen(self._notifier, READY_NOTIFICATION, callback)

    def describe(self) -> dict:
        return {
            "state": self.state.value,
            "sourceLoading": bool(self.source_loading),
            "responsive": self.resize_attached,
            **self.snapshot.to_dict(),
        }

    # ------------------------------------------------------------------ lifecycle

    def mount(self) -> None:
        """
        Initialise the engine, wire its events and load the initial source.
        """

        if self.state in (LifecycleState.INITIALIZING, LifecycleState.READY):
            LOG.debug("Controller already mounted; ignoring mount().")
            return

        props = self.props
        options = dict(props.options)
        options["container"] = self.container
        # media element loading is only supported by the MediaElement backend
        if props.media_elt:
            options["backend"] = "MediaElement"

        if props.responsive:
            self._require_scheduler()
        self.state = LifecycleState.INITIALIZING
        self.snapshot = PlaybackSnapshot()
        self.source_loading = False
        engine = self._engine
        engine.init(options)
        LOG.info("Engine initialised (backend=%s)", options.get("backend", "default"))

        self._track(listen(engine, "ready", self._on_engine_ready))
        self._track(listen(engine, "audioprocess", self._on_audioprocess))
        self._track(listen(engine, "seek", self._on_seek))
        self._track(listen(engine, "error", self._on_engine_error))
        for entry in ENGINE_EVENTS:
            lookup = partial(self._current_callback, entry.slot)
            self._track(bridge(engine, entry.event, lookup, engine=engine, lookup=True))

        if props.audio_file is not None:
            self.load_source(props.audio_file, props.audio_peaks)
        if props.media_elt:
            self.load_media_element(props.media_elt, props.audio_peaks)

        if props.responsive:
            self._attach_resize()

    def unmount(self) -> None:
        """
        Dispose every subscription, detach the resize listener and destroy the
        engine.  Safe to call before the engine ever became ready.
        """

        if self.state in (LifecycleState.UNINITIALIZED, LifecycleState.DESTROYED):
            self._detach_resize()
            return

        self._detach_resize()
        disposed = self._subscriptions.dispose_all()
        self._pending_seek = None
        LOG.debug("Disposed %d engine subscriptions", disposed)
        try:
            self._engine.destroy()
        finally:
            self.state = LifecycleState.DESTROYED
            self.snapshot.is_ready = False
            self.source_loading = False
            LOG.info("Engine destroyed")

    # ------------------------------------------------------------------ loading

    def load_source(self, source: Any, peaks: Optional[Sequence[float]] = None) -> SourceKind:
        """
        Load a path/URL, an in-memory binary object or a media element.

        Raises :class:`~wavesync.media.UnsupportedSourceError` for anything else.
        """

        kind = classify_source(source)
        self._begin_source_load()
        self._dispatch_load(kind, source, peaks)
        return kind

    def load_media_element(self, selector_or_element: Any, peaks: Optional[Sequence[float]] = None) -> None:
        """
        Load a media element, resolving selector strings first.

        Raises :class:`~wavesync.media.MediaElementNotFoundError` when the
        selector matches nothing.
        """

        element = resolve_media_element(selector_or_element, self._resolver)
        self._begin_source_load()
        self._dispatch_load(SourceKind.MEDIA_ELEMENT, element, peaks)

    def _begin_source_load(self) -> None:
        self.source_loading = True
        self.snapshot.is_ready = False

    def _dispatch_load(self, kind: SourceKind, source: Any, peaks: Optional[Sequence[float]]) -> None:
        LOG.info("Loading %s source", kind.value)
        if kind is SourceKind.MEDIA_ELEMENT:
            self._engine.load_media_element(source, peaks)
        elif kind is SourceKind.BLOB:
            self._engine.load_blob(source, peaks)
        else:
            self._engine.load(str(source), peaks)

    def _reload_peaks(self, props: PlayerProps) -> None:
        if props.media_elt:
            element = resolve_media_element(props.media_elt, self._resolver)
            self._dispatch_load(SourceKind.MEDIA_ELEMENT, element, props.audio_peaks)
        elif props.audio_file is not None:
            self._dispatch_load(classify_source(props.audio_file), props.audio_file, props.audio_peaks)
        else:
            LOG.debug("Peaks changed without a source; nothing to reload.")

    # ------------------------------------------------------------------ positions

    def seconds_to_progress(self, seconds: float) -> float:
        return seconds_to_progress(seconds, self._engine.get_duration())

    def progress_to_seconds(self, progress: float) -> float:
        return progress_to_seconds(progress, self._engine.get_duration())

    def seek_to(self, seconds: float) -> None:
        progress = self.seconds_to_progress(seconds)
        if self.props.auto_center:
            self._engine.seek_and_center(progress)
        else:
            self._engine.seek_to(progress)

    def _seek_after_next_ready(self, seconds: float) -> None:
        if self._pending_seek is not None:
            self._pending_seek.dispose()

        def _seek(*_args: Any) -> None:
            self._pending_seek = None
            self.snapshot.position = float(seconds)
            self.seek_to(seconds)

        self._pending_seek = self._track(listen_once(self._engine, "ready", _seek))
        LOG.debug("Queued seek to %.3fs for the next ready event", seconds)

    # ------------------------------------------------------------------ prop diffs

    def update(self, next_props: Union[PlayerProps, Mapping[str, Any]]) -> None:
        """
        Apply the difference between the current and ``next_props``.
        """

        if not isinstance(next_props, PlayerProps):
            next_props = PlayerProps.from_dict(next_props, base=self.props)
        previous = self.props
        self.props = next_props
        if self.state not in (LifecycleState.INITIALIZING, LifecycleState.READY):
            return
        self._apply_diff(previous, next_props)

    def _apply_diff(self, prev: PlayerProps, nxt: PlayerProps) -> None:
        engine = self._engine
        was_ready = self.snapshot.is_ready
        new_source = False

        if _changed(prev.audio_file, nxt.audio_file):
            if nxt.audio_file is not None:
                self.load_source(nxt.audio_file, nxt.audio_peaks)
                new_source = True
            else:
                LOG.debug("audio_file cleared; keeping the loaded source.")

        if _changed(prev.media_elt, nxt.media_elt):
            if nxt.media_elt:
                self.load_media_element(nxt.media_elt, nxt.audio_peaks)
                new_source = True
            else:
                LOG.debug("media_elt cleared; keeping the loaded source.")

        if not new_source and _changed(prev.audio_peaks, nxt.audio_peaks):
            self._reload_peaks(nxt)

        if (
            nxt.pos is not None
            and was_ready
            and nxt.pos != prev.pos
            and nxt.pos != self.snapshot.last_reported_position
        ):
            if new_source:
                self._seek_after_next_ready(nxt.pos)
            else:
                self.seek_to(nxt.pos)

        if not new_source and bool(nxt.playing) != bool(engine.is_playing()):
            if nxt.playing:
                engine.play()
            else:
                engine.pause()

        if _changed(prev.volume, nxt.volume) and nxt.volume is not None:
            engine.set_volume(nxt.volume)

        if _changed(prev.zoom, nxt.zoom) and nxt.zoom is not None:
            engine.zoom(nxt.zoom)

        if _changed(prev.audio_rate, nxt.audio_rate) and nxt.audio_rate is not None:
            engine.set_playback_rate(nxt.audio_rate)

        if nxt.responsive and not prev.responsive:
            self._attach_resize()
        elif prev.responsive and not nxt.responsive:
            self._detach_resize()

    # ------------------------------------------------------------------ engine events

    def _current_callback(self, slot: str) -> Optional[Callable[[EventPayload], None]]:
        return self.props.callback(slot)

    def _on_engine_ready(self, *_args: Any) -> None:
        if self.state is LifecycleState.DESTROYED:
            return
        self.state = LifecycleState.READY
        self.source_loading = False
        self.snapshot.is_ready = True
        props = self.props
        LOG.info("Engine ready (duration=%.3fs)", self._engine.get_duration())

        # a freshly loaded source starts at 0 until something seeks it
        self.snapshot.position = 0.0
        # a queued post-reload seek runs right after this handler
        if self._pending_seek is None and props.pos:
            self.snapshot.position = float(props.pos)
            self.seek_to(props.pos)
        if props.volume is not None:
            self._engine.set_volume(props.volume)
        if props.playing:
            self._engine.play()
        if props.zoom:
            self._engine.zoom(props.zoom)

        self._notifier.fire_event(READY_NOTIFICATION, self._engine)

    def _on_audioprocess(self, progress: float = 0.0, *_args: Any) -> None:
        self._report_position(self.progress_to_seconds(progress))

    def _on_seek(self, progress: float = 0.0, *_args: Any) -> None:
        # seek events fire while decoding too; only trust them once ready
        if not self.snapshot.is_ready:
            return
        self._report_position(self.progress_to_seconds(progress))

    def _report_position(self, seconds: float) -> None:
        self.snapshot.position = seconds
        self.snapshot.last_reported_position = seconds
        callback = self.props.callback(POS_CHANGE.slot)
        if callback is not None:
            deliver(callback, EventPayload((seconds,), self._engine), POS_CHANGE.slot)

    def _on_engine_error(self, *args: Any) -> None:
        LOG.warning("Engine reported an error: %s", args[0] if args else "<no details>")

    # ------------------------------------------------------------------ resize

    def _attach_resize(self) -> None:
        if self._resize_token is not None:
            return
        self._require_scheduler()
        self._resize_token = self.resize_signal.subscribe(self._resize_throttle)
        LOG.debug("Responsive resize handling enabled")

    def _require_scheduler(self) -> None:
        # a missing event loop has to surface here, not inside ResizeSignal.emit
        if isinstance(self._scheduler, AsyncioScheduler):
            self._scheduler.bind()

    def _detach_resize(self) -> None:
        token, self._resize_token = self._resize_token, None
        if token is not None:
            self.resize_signal.unsubscribe(token)
            LOG.debug("Responsive resize handling disabled")
        self._resize_throttle.cancel()

    def _handle_resize(self) -> None:
        if self.state is LifecycleState.DESTROYED:
            return
        engine = self._engine
        was_playing = bool(engine.is_playing())
        if was_playing:
            engine.pause()

        engine.draw_buffer()

        # peaks can be drawn before any file finished loading
        if self.snapshot.is_ready:
            self.seek_to(self.snapshot.position)

        if was_playing:
            engine.play()

    # ------------------------------------------------------------------ helpers

    def _track(self, subscription: Subscription) -> Subscription:
        return self._subscriptions.add(subscription)


__all__ = [
    "LifecycleController",
    "LifecycleState",
    "PlaybackSnapshot",
    "progress_to_seconds",
    "seconds_to_progress",
]
