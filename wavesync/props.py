"""
Declarative prop snapshots for the player and its regions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .events import PLAYER_SLOTS, REGION_SLOTS, alias_map
from .schemas import normalise_options, validate_player_payload, validate_region_payload

LOG = logging.getLogger(__name__)

Callback = Callable[..., None]

PLAYER_FIELDS: Dict[str, str] = {
    "playing": "playing",
    "pos": "pos",
    "audioFile": "audio_file",
    "audio_file": "audio_file",
    "mediaElt": "media_elt",
    "media_elt": "media_elt",
    "audioPeaks": "audio_peaks",
    "audio_peaks": "audio_peaks",
    "volume": "volume",
    "zoom": "zoom",
    "responsive": "responsive",
    "options": "options",
}

_PLAYER_CALLBACKS = alias_map(PLAYER_SLOTS)
_REGION_CALLBACKS = alias_map(REGION_SLOTS)


@dataclass(frozen=True)
class RegionDescriptor:
    """
    Caller supplied description of one region.

    Identity is the mapping key (``id``), never object identity.
    """

    id: str
    start: float
    end: float
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, region_id: str, payload: Any) -> "RegionDescriptor":
        if isinstance(payload, RegionDescriptor):
            if payload.id == region_id:
                return payload
            return replace(payload, id=region_id)
        data = dict(payload or {})
        data.pop("id", None)
        start = float(data.pop("start", 0.0))
        end = float(data.pop("end", start))
        return cls(id=str(region_id), start=start, end=end, attributes=data)

    def span(self) -> tuple[float, float]:
        return (self.start, self.end)

    def to_engine(self) -> Dict[str, Any]:
        """
        Argument passed to the engine's ``add_region``.
        """

        return {**dict(self.attributes), "id": self.id, "start": self.start, "end": self.end}


def _split_callbacks(
    payload: Mapping[str, Any], callbacks: Mapping[str, str]
) -> tuple[Dict[str, Any], Dict[str, Optional[Callback]]]:
    fields: Dict[str, Any] = {}
    slots: Dict[str, Optional[Callback]] = {}
    for key, value in payload.items():
        slot = callbacks.get(key)
        if slot is not None:
            slots[slot] = value if callable(value) else None
        else:
            fields[key] = value
    return fields, slots


def _merge_callbacks(
    base: Mapping[str, Callback], updates: Mapping[str, Optional[Callback]]
) -> Dict[str, Callback]:
    merged = dict(base)
    for slot, value in updates.items():
        if value is None:
            merged.pop(slot, None)
        else:
            merged[slot] = value
    return merged


@dataclass(frozen=True)
class PlayerProps:
    """
    Immutable snapshot of the player's declarative state.
    """

    playing: bool = False
    pos: Optional[float] = 0.0
    audio_file: Any = None
    media_elt: Any = None
    audio_peaks: Optional[Sequence[float]] = None
    volume: Optional[float] = None
    zoom: Optional[float] = None
    responsive: bool = True
    options: Mapping[str, Any] = field(default_factory=dict)
    callbacks: Mapping[str, Callback] = field(default_factory=dict)

    def callback(self, slot: str) -> Optional[Callback]:
        return self.callbacks.get(slot)

    @property
    def audio_rate(self) -> Optional[float]:
        return self.options.get("audio_rate")

    @property
    def auto_center(self) -> bool:
        return bool(self.options.get("auto_center"))

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], *, base: Optional["PlayerProps"] = None
    ) -> "PlayerProps":
        """
        Build props from a camelCase or snake_case payload.

        With ``base`` only the keys present in ``payload`` change.  Invalid
        field shapes are logged as warnings and still applied.
        """

        validate_player_payload(payload)
        base = base or cls()
        raw_fields, slots = _split_callbacks(payload, _PLAYER_CALLBACKS)

        changes: Dict[str, Any] = {}
        for key, value in raw_fields.items():
            name = PLAYER_FIELDS.get(key)
            if name is None:
                LOG.warning("Ignoring unknown player prop '%s'", key)
                continue
            if name == "options":
                value = normalise_options(value)
            elif name == "audio_peaks" and value is not None:
                value = list(value)
            changes[name] = value

        if slots:
            changes["callbacks"] = _merge_callbacks(base.callbacks, slots)
        return replace(base, **changes)

    def evolve(self, **changes: Any) -> "PlayerProps":
        if "options" in changes:
            changes["options"] = normalise_options(changes["options"])
        return replace(self, **changes)


def _normalise_regions(regions: Any) -> Dict[str, RegionDescriptor]:
    if not regions:
        return {}
    if isinstance(regions, Mapping):
        items = regions.items()
    else:
        # a sequence of descriptors keyed by their own id
        items = ((getattr(entry, "id", None) or entry["id"], entry) for entry in regions)
    return {str(key): RegionDescriptor.from_payload(str(key), value) for key, value in items}


@dataclass(frozen=True)
class RegionProps:
    """
    Declarative region mapping plus the region callback slots.
    """

    regions: Mapping[str, RegionDescriptor] = field(default_factory=dict)
    callbacks: Mapping[str, Callback] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regions", _normalise_regions(self.regions))

    def callback(self, slot: str) -> Optional[Callback]:
        return self.callbacks.get(slot)

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], *, base: Optional["RegionProps"] = None
    ) -> "RegionProps":
        validate_region_payload(payload)
        base = base or cls()
        raw_fields, slots = _split_callbacks(payload, _REGION_CALLBACKS)

        changes: Dict[str, Any] = {}
        for key, value in raw_fields.items():
            if key != "regions":
                LOG.warning("Ignoring unknown region prop '%s'", key)
                continue
            changes["regions"] = value
        if slots:
            changes["callbacks"] = _merge_callbacks(base.callbacks, slots)
        return replace(base, **changes)

    def with_regions(self, regions: Any) -> "RegionProps":
        return replace(self, regions=regions)


__all__ = ["PLAYER_FIELDS", "PlayerProps", "RegionDescriptor", "RegionProps"]
