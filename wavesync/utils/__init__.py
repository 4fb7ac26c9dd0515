"""Utility helpers for wavesync."""

from .logging import configure_logging
from .profiles import load_profiles, profile_options

__all__ = ["configure_logging", "load_profiles", "profile_options"]
