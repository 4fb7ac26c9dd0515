"""
Audio source kinds accepted by the lifecycle controller.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol


class PlayerError(RuntimeError):
    """Base class for player synchronisation errors."""


class MediaElementNotFoundError(PlayerError):
    """Raised when a media element selector does not resolve to an element."""


class UnsupportedSourceError(PlayerError, TypeError):
    """Raised when a source is neither a path, a binary object nor a media element."""


class SourceKind(str, Enum):
    """Loader used for a given source."""

    URL = "url"
    BLOB = "blob"
    MEDIA_ELEMENT = "media_element"


@dataclass
class MediaElement:
    """
    Handle to a host media element (for example an ``<audio>`` tag).
    """

    element_id: str
    src: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class Blob:
    """In-memory audio payload."""

    data: bytes
    mime_type: str = "application/octet-stream"
    name: Optional[str] = None

    def __len__(self) -> int:
        return len(self.data)


class ElementResolver(Protocol):
    def query_selector(self, selector: str) -> Optional[MediaElement]:
        ...


class ElementRegistry:
    """
    Minimal :class:`ElementResolver` backed by a dictionary.

    Supports ``#id`` selectors and bare ids.
    """

    def __init__(self, *elements: MediaElement) -> None:
        self._elements: Dict[str, MediaElement] = {}
        for element in elements:
            self.register(element)

    def register(self, element: MediaElement) -> None:
        self._elements[element.element_id] = element

    def unregister(self, element_id: str) -> None:
        self._elements.pop(element_id, None)

    def query_selector(self, selector: str) -> Optional[MediaElement]:
        key = selector.strip()
        if key.startswith("#"):
            key = key[1:]
        return self._elements.get(key)


BINARY_TYPES = (bytes, bytearray, memoryview, Blob)


def _is_binary_stream(value: Any) -> bool:
    if isinstance(value, (io.BufferedIOBase, io.RawIOBase)):
        return True
    return isinstance(value, io.IOBase) and "b" in str(getattr(value, "mode", ""))


def classify_source(source: Any) -> SourceKind:
    """
    Return the loader kind for ``source`` or raise :class:`UnsupportedSourceError`.
    """

    if isinstance(source, MediaElement):
        return SourceKind.MEDIA_ELEMENT
    if isinstance(source, (str, os.PathLike)):
        return SourceKind.URL
    if isinstance(source, BINARY_TYPES) or _is_binary_stream(source):
        return SourceKind.BLOB
    raise UnsupportedSourceError(
        "audio source must be a path or URL string, a binary object "
        f"(bytes, Blob, binary file) or a MediaElement; got {type(source).__name__}"
    )


def resolve_media_element(
    selector_or_element: Any, resolver: Optional[ElementResolver]
) -> MediaElement:
    """
    Return the element for ``selector_or_element``.

    Raises :class:`MediaElementNotFoundError` when a selector matches nothing.
    """

    if isinstance(selector_or_element, MediaElement):
        return selector_or_element
    if not isinstance(selector_or_element, str):
        raise UnsupportedSourceError(
            f"media element must be a selector string or MediaElement; "
            f"got {type(selector_or_element).__name__}"
        )
    element = resolver.query_selector(selector_or_element) if resolver is not None else None
    if element is None:
        raise MediaElementNotFoundError(f"Media element not found: {selector_or_element!r}")
    return element


__all__ = [
    "Blob",
    "ElementRegistry",
    "ElementResolver",
    "MediaElement",
    "MediaElementNotFoundError",
    "PlayerError",
    "SourceKind",
    "UnsupportedSourceError",
    "classify_source",
    "resolve_media_element",
]
