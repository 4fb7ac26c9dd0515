"""Tests covering command line parsing and logging setup."""

from __future__ import annotations

import logging

from wavesync.main import parse_args
from wavesync.utils.logging import configure_logging, resolve_level


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.profile == "default"
    assert args.host == "127.0.0.1"
    assert args.port == 8080
    assert args.log_level == "info"


def test_parse_args_overrides() -> None:
    args = parse_args(["--profile", "podcast", "--host", "0.0.0.0", "--port", "9000", "--log-level", "debug"])

    assert (args.profile, args.host, args.port, args.log_level) == ("podcast", "0.0.0.0", 9000, "debug")


def test_configure_logging_respects_existing_handlers(monkeypatch) -> None:
    root = logging.getLogger()
    package = logging.getLogger("wavesync")
    handler = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [handler])
    monkeypatch.setattr(package, "level", package.level)

    configure_logging("debug")

    assert root.handlers == [handler]
    assert package.level == logging.DEBUG


def test_resolve_level() -> None:
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("chatty") == logging.INFO
