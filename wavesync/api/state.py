"""
Shared player state used by the control API.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from functools import partial
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from .. import PlayerConfig
from ..bridge import EventPayload
from ..engine import Engine
from ..events import PLAYER_SLOTS, REGION_SLOTS, EventSlot
from ..media import ElementRegistry
from ..player import Player
from ..props import PlayerProps, RegionProps
from ..runtime.headless import HeadlessEngine
from ..runtime.scheduling import AsyncioScheduler, Scheduler
from ..utils.profiles import profile_options

LOG = logging.getLogger(__name__)

# high-frequency slots kept out of the event log
QUIET_SLOTS = frozenset({"on_audioprocess"})


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _jsonable(to_dict())
    return repr(value)


class PlayerState:
    """
    Player plus a bounded log of every forwarded callback.

    All user callback slots are bound to a recorder, so the API can expose
    what a UI would have received.
    """

    def __init__(
        self,
        config: Optional[PlayerConfig] = None,
        *,
        engine: Optional[Engine] = None,
        scheduler: Optional[Scheduler] = None,
        resolver: Optional[ElementRegistry] = None,
    ) -> None:
        self.config = config or PlayerConfig()
        self.scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.engine = engine if engine is not None else HeadlessEngine(
            scheduler=self.scheduler,
            decode_delay=self.config.decode_delay,
            default_duration=self.config.default_duration,
        )
        self.resolver = resolver if resolver is not None else ElementRegistry()
        self.events: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(self.config.event_history)))
        self._mounted = False
        self._observer_counter = 0
        self._observers: Dict[int, Callable[[Dict[str, Any]], None]] = {}

        props = PlayerProps(
            options=profile_options(self.config.profile),
            callbacks=self._recorders(PLAYER_SLOTS),
        )
        region_props = RegionProps(callbacks=self._recorders(REGION_SLOTS))
        self.player = Player(
            self.engine,
            props,
            region_props,
            resolver=self.resolver,
            scheduler=self.scheduler,
        )

    # ------------------------------------------------------------------ lifecycle

    @property
    def mounted(self) -> bool:
        return self._mounted

    def ensure_mounted(self) -> None:
        if self._mounted:
            return
        self.player.mount()
        self._mounted = True
        LOG.info("Player mounted with profile '%s'", self.config.profile)

    def close(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self.player.unmount()
        self._observers.clear()
        LOG.info("Player unmounted")

    # ------------------------------------------------------------------ recording

    def _recorders(self, table: Tuple[EventSlot, ...]) -> Dict[str, Callable[[EventPayload], None]]:
        return {entry.slot: partial(self._record, entry.slot) for entry in table}

    def _record(self, slot: str, payload: EventPayload) -> None:
        entry = {"slot": slot, "at": time.time(), **_jsonable(payload.to_dict())}
        if slot not in QUIET_SLOTS:
            self.events.append(entry)
        for token, observer in list(self._observers.items()):
            try:
                observer(entry)
            except Exception:  # pragma: no cover - observer failures should not break playback
                LOG.exception("Event observer %s failed.", token)

    def subscribe(self, observer: Callable[[Dict[str, Any]], None]) -> int:
        self._observer_counter += 1
        token = self._observer_counter
        self._observers[token] = observer
        return token

    def unsubscribe(self, token: int) -> None:
        self._observers.pop(token, None)

    def recent_events(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        events = list(self.events)
        if limit is not None:
            events = events[-max(0, int(limit)):] if limit else []
        return events

    # ------------------------------------------------------------------ snapshots

    def snapshot(self) -> Dict[str, Any]:
        props = self.player.controller.props
        return {
            "profile": self.config.profile,
            "mounted": self._mounted,
            "player": self.player.describe(),
            "props": {
                "playing": bool(props.playing),
                "pos": props.pos,
                "volume": props.volume,
                "zoom": props.zoom,
                "responsive": bool(props.responsive),
                "audioFile": props.audio_file if isinstance(props.audio_file, str) else None,
            },
        }
