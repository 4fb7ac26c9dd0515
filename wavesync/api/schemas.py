"""
Pydantic schemas for the REST/WS contract.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import PlayerPropsModel, RegionModel

__all__ = [
    "AdvanceRequest",
    "PlayerPropsModel",
    "ReadyRequest",
    "RegionModel",
    "RegionsRequest",
]


class RegionsRequest(BaseModel):
    regions: Dict[str, RegionModel] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ReadyRequest(BaseModel):
    duration: Optional[float] = Field(default=None, ge=0)


class AdvanceRequest(BaseModel):
    seconds: float = Field(ge=0)
