"""
Engine option profiles stored as YAML.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..schemas import normalise_options

LOG = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"
PROFILES_PATH = CONFIG_DIR / "profiles.yaml"
ENV_PROFILES_VAR = "WAVESYNC_PROFILES"
DEFAULT_PROFILE = "default"


def profiles_path() -> Path:
    override = os.environ.get(ENV_PROFILES_VAR)
    if override:
        return Path(override).expanduser()
    return PROFILES_PATH


def load_profiles(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """
    Read the profile file.  Missing or malformed files yield an empty mapping.
    """

    target = Path(path) if path is not None else profiles_path()
    try:
        with target.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        LOG.warning("Unable to read profiles from %s: %s", target, exc)
        return {}
    except yaml.YAMLError as exc:
        LOG.warning("Malformed profiles file %s: %s", target, exc)
        return {}

    if not isinstance(data, dict):
        LOG.warning("Profiles file %s must contain a mapping; ignoring it.", target)
        return {}
    return {
        str(name): dict(options or {})
        for name, options in data.items()
        if isinstance(options, dict) or options is None
    }


def profile_options(
    name: str = DEFAULT_PROFILE, profiles: Optional[Mapping[str, Mapping[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Return a normalised copy of one profile's engine options.
    """

    available = load_profiles() if profiles is None else profiles
    options = available.get(name)
    if options is None:
        if name != DEFAULT_PROFILE:
            LOG.warning("Unknown profile '%s'; falling back to '%s'.", name, DEFAULT_PROFILE)
        options = available.get(DEFAULT_PROFILE, {})
    return {key: value for key, value in normalise_options(options).items() if value is not None}
