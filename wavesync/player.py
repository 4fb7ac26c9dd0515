"""
Player facade combining the lifecycle controller with its region child.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from .engine import Engine
from .lifecycle import LifecycleController
from .media import ElementResolver
from .props import PlayerProps, RegionProps
from .regions import RegionDiff, RegionReconciler
from .runtime.scheduling import ResizeSignal, Scheduler

LOG = logging.getLogger(__name__)


class Player:
    """
    Owns one :class:`LifecycleController` and, optionally, the
    :class:`RegionReconciler` that borrows its engine.

    Mount order is controller first, then regions; unmount order is the same,
    so the engine's own teardown gets the first chance to remove live regions.
    """

    def __init__(
        self,
        engine: Engine,
        props: Optional[PlayerProps] = None,
        region_props: Optional[RegionProps] = None,
        *,
        with_regions: bool = True,
        container: Any = None,
        resolver: Optional[ElementResolver] = None,
        resize_signal: Optional[ResizeSignal] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.controller = LifecycleController(
            engine,
            props,
            container=container,
            resolver=resolver,
            resize_signal=resize_signal,
            scheduler=scheduler,
        )
        self.regions: Optional[RegionReconciler] = (
            RegionReconciler(self.controller, region_props) if with_regions else None
        )

    @property
    def engine(self) -> Engine:
        return self.controller.engine

    @property
    def is_ready(self) -> bool:
        return self.controller.is_ready

    def mount(self) -> None:
        self.controller.mount()
        if self.regions is not None:
            self.regions.mount()

    def update(
        self,
        props: Union[PlayerProps, Mapping[str, Any], None] = None,
        regions: Union[RegionProps, Mapping[str, Any], None] = None,
    ) -> Optional[RegionDiff]:
        """
        Push new player props and/or region props.

        Player props are applied first so a source change gates the region pass.
        """

        if props is not None:
            self.controller.update(props)
        if regions is None:
            return None
        if self.regions is None:
            LOG.warning("Region props supplied to a player without region support; ignoring.")
            return None
        return self.regions.update(regions)

    def unmount(self) -> None:
        self.controller.unmount()
        if self.regions is not None:
            self.regions.unmount()

    def describe(self) -> dict:
        snapshot = self.controller.describe()
        snapshot["regions"] = self.regions.live_region_ids() if self.regions is not None else []
        snapshot["subscriptions"] = self.controller.active_subscriptions + (
            self.regions.active_subscriptions if self.regions is not None else 0
        )
        return snapshot


__all__ = ["Player"]
