"""
Pydantic schemas describing the declarative player surface.

Validation happens at the boundary and is advisory: problems are collected as
warnings and logged, never raised to the caller.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .events import PLAYER_SLOTS, REGION_SLOTS, alias_map
from .media import BINARY_TYPES, MediaElement

LOG = logging.getLogger(__name__)


class EngineOptionsModel(BaseModel):
    """
    Options forwarded to the engine at initialisation.

    Unknown keys are allowed and forwarded untouched.
    """

    audio_rate: Optional[float] = Field(default=None, alias="audioRate", gt=0)
    backend: Optional[Literal["WebAudio", "MediaElement"]] = None
    bar_width: Optional[float] = Field(default=None, alias="barWidth")
    cursor_color: Optional[str] = Field(default=None, alias="cursorColor")
    cursor_width: Optional[int] = Field(default=None, alias="cursorWidth", ge=0)
    drag_selection: Optional[bool] = Field(default=None, alias="dragSelection")
    fill_parent: Optional[bool] = Field(default=None, alias="fillParent")
    height: Optional[int] = Field(default=None, ge=0)
    hide_scrollbar: Optional[bool] = Field(default=None, alias="hideScrollbar")
    interact: Optional[bool] = None
    loop_selection: Optional[bool] = Field(default=None, alias="loopSelection")
    media_controls: Optional[bool] = Field(default=None, alias="mediaControls")
    min_px_per_sec: Optional[int] = Field(default=None, alias="minPxPerSec", ge=0)
    normalize: Optional[bool] = None
    pixel_ratio: Optional[float] = Field(default=None, alias="pixelRatio")
    progress_color: Optional[str] = Field(default=None, alias="progressColor")
    scroll_parent: Optional[bool] = Field(default=None, alias="scrollParent")
    skip_length: Optional[float] = Field(default=None, alias="skipLength")
    wave_color: Optional[str] = Field(default=None, alias="waveColor")
    auto_center: Optional[bool] = Field(default=None, alias="autoCenter")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


OPTION_ALIASES: Dict[str, str] = {
    info.alias: name for name, info in EngineOptionsModel.model_fields.items() if info.alias
}


def normalise_options(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Return a copy of ``options`` with camelCase keys renamed to snake_case.
    """

    if not options:
        return {}
    return {OPTION_ALIASES.get(key, key): value for key, value in options.items()}


class RegionModel(BaseModel):
    id: Optional[str] = None
    start: float = Field(ge=0)
    end: float = Field(ge=0)

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def _check_bounds(self) -> "RegionModel":
        if self.end < self.start:
            raise ValueError("region end must not precede its start")
        return self


class PlayerPropsModel(BaseModel):
    playing: Optional[bool] = None
    pos: Optional[float] = Field(default=None, ge=0)
    audio_file: Any = Field(default=None, alias="audioFile")
    media_elt: Any = Field(default=None, alias="mediaElt")
    audio_peaks: Optional[List[float]] = Field(default=None, alias="audioPeaks")
    volume: Optional[float] = Field(default=None, ge=0)
    zoom: Optional[float] = Field(default=None, ge=0)
    responsive: Optional[bool] = None
    options: Optional[EngineOptionsModel] = None
    regions: Optional[Dict[str, RegionModel]] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("playing", "responsive", mode="before")
    @classmethod
    def _strict_flag(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, bool):
            raise ValueError("expected a boolean")
        return value

    @field_validator("audio_file", mode="before")
    @classmethod
    def _check_audio_file(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, os.PathLike) + BINARY_TYPES):
            return value
        if hasattr(value, "read"):
            return value
        raise ValueError("expected a path/URL string or a binary object")

    @field_validator("media_elt", mode="before")
    @classmethod
    def _check_media_elt(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, MediaElement)):
            return value
        raise ValueError("expected a selector string or MediaElement")


class RegionPropsModel(BaseModel):
    regions: Optional[Dict[str, RegionModel]] = None

    model_config = ConfigDict(extra="forbid")


_PLAYER_CALLBACKS = alias_map(PLAYER_SLOTS)
_REGION_CALLBACKS = alias_map(REGION_SLOTS)


def _plain_regions(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: entry.to_engine() if hasattr(entry, "to_engine") else entry
            for key, entry in value.items()
        }
    if isinstance(value, (list, tuple)):
        plain: Dict[str, Any] = {}
        for entry in value:
            entry = entry.to_engine() if hasattr(entry, "to_engine") else entry
            if isinstance(entry, Mapping) and "id" in entry:
                plain[str(entry["id"])] = entry
        return plain
    return value


def _validate(model: type[BaseModel], payload: Mapping[str, Any], callbacks: Mapping[str, str]) -> List[str]:
    warnings: List[str] = []
    data: Dict[str, Any] = {}
    for key, value in payload.items():
        if key in callbacks:
            if value is not None and not callable(value):
                warnings.append(f"{key}: expected a callable")
            continue
        data[key] = _plain_regions(value) if key == "regions" else value

    try:
        model.model_validate(data)
    except ValidationError as exc:
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
            warnings.append(f"{location}: {error.get('msg')}")

    for warning in warnings:
        LOG.warning("Invalid %s field %s", model.__name__, warning)
    return warnings


def validate_player_payload(payload: Mapping[str, Any]) -> List[str]:
    """
    Check a player prop payload and return human readable warnings.
    """

    return _validate(PlayerPropsModel, payload, _PLAYER_CALLBACKS)


def validate_region_payload(payload: Mapping[str, Any]) -> List[str]:
    return _validate(RegionPropsModel, payload, _REGION_CALLBACKS)


__all__ = [
    "EngineOptionsModel",
    "OPTION_ALIASES",
    "PlayerPropsModel",
    "RegionModel",
    "RegionPropsModel",
    "normalise_options",
    "validate_player_payload",
    "validate_region_payload",
]
