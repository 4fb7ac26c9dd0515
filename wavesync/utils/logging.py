"""
Logging helpers for wavesync.

The library itself only ever calls ``logging.getLogger(__name__)``; handler
setup is left to applications, or to :func:`configure_logging` for the bundled
control server.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional, Union

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
PACKAGE_LOGGER = "wavesync"


def resolve_level(level: Union[int, str]) -> int:
    """
    Translate ``"debug"``/``"INFO"``/``20`` style levels to an integer.

    Unknown names resolve to ``logging.INFO``.
    """

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Union[int, str] = logging.INFO,
    format: Optional[str] = None,
    *,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Configure the root logger once and align the package logger's level.

    Existing root handlers are left alone so embedding applications keep
    control over their own output.
    """

    numeric = resolve_level(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric)

    if logging.getLogger().handlers:
        return

    logging.basicConfig(
        level=numeric,
        format=format or DEFAULT_FORMAT,
        handlers=[logging.StreamHandler(stream or sys.stdout)],
    )
