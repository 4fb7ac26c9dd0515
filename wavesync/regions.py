"""
Region reconciliation.

The reconciler keeps the engine's live regions equal to a declarative mapping
of :class:`~wavesync.props.RegionDescriptor` objects.  Each pass issues the
minimal edit script: regions new to the mapping are added, regions whose span
changed are updated in place, and regions no longer present are removed.
Nothing is touched while the lifecycle controller is not ready.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .bridge import Subscription, SubscriptionSet, bridge, listen
from .engine import LiveRegion, has_region_support
from .events import REGION_EVENTS, REGIONS_EVENTS
from .lifecycle import LifecycleController, LifecycleState
from .props import RegionDescriptor, RegionProps

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionDiff:
    """
    Edit script between a live region set and a descriptor mapping.
    """

    added: Tuple[str, ...] = ()
    updated: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        return {
            "added": list(self.added),
            "updated": list(self.updated),
            "removed": list(self.removed),
        }


def _span(region: Any) -> Tuple[float, float]:
    if isinstance(region, tuple):
        return (float(region[0]), float(region[1]))
    return (float(region.start), float(region.end))


def diff_regions(live: Mapping[str, Any], desired: Mapping[str, RegionDescriptor]) -> RegionDiff:
    """
    Compute the edit script turning ``live`` into ``desired``.

    ``live`` maps ids to anything exposing ``start``/``end`` (or to
    ``(start, end)`` tuples).  ``added`` and ``updated`` follow ``desired``
    order; ``removed`` follows ``live`` order.
    """

    candidates = dict.fromkeys(live)
    added = []
    updated = []
    for region_id, descriptor in desired.items():
        candidates.pop(region_id, None)
        current = live.get(region_id)
        if current is None:
            added.append(region_id)
        elif _span(current) != descriptor.span():
            updated.append(region_id)
    return RegionDiff(added=tuple(added), updated=tuple(updated), removed=tuple(candidates))


class RegionReconciler:
    """
    Mirror a :class:`RegionProps` stream onto the engine borrowed from a
    :class:`LifecycleController`.
    """

    def __init__(self, controller: LifecycleController, props: Optional[RegionProps] = None) -> None:
        self._controller = controller
        self.props = props if props is not None else RegionProps()
        self.mounted = False
        self._initialised = False
        self._ready_subscription: Optional[Subscription] = None
        self._aggregate = SubscriptionSet()
        self._per_region: Dict[str, Tuple[LiveRegion, SubscriptionSet]] = {}

    # ------------------------------------------------------------------ accessors

    @property
    def engine(self) -> Any:
        return self._controller.engine

    @property
    def can_mutate(self) -> bool:
        return self._controller.is_ready and has_region_support(self.engine)

    @property
    def active_subscriptions(self) -> int:
        return len(self._aggregate) + sum(len(subs) for _, subs in self._per_region.values())

    def live_region_ids(self) -> list[str]:
        if not has_region_support(self.engine):
            return []
        return list(self.engine.regions)

    # ------------------------------------------------------------------ lifecycle

    def mount(self) -> None:
        if self.mounted:
            return
        self.mounted = True
        self._ready_subscription = self._controller.on_ready(self._on_ready)
        if self.can_mutate:
            self._initialise()

    def unmount(self) -> None:
        """
        Dispose aggregate and per-region listeners.

        Regions still alive are removed when the engine outlives this
        reconciler; when the engine is already destroyed only the listeners are
        released.
        """

        if not self.mounted:
            return
        self.mounted = False
        if self._ready_subscription is not None:
            self._ready_subscription.dispose()
            self._ready_subscription = None
        self._aggregate.dispose_all()

        engine = self.engine
        engine_alive = (
            self._controller.state is not LifecycleState.DESTROYED and has_region_support(engine)
        )
        for region_id, (region, _subs) in list(self._per_region.items()):
            if engine_alive and engine.regions.get(region_id) is region:
                region.remove()
            self._release(region_id)
        self._initialised = False

    def _on_ready(self, _engine: Any) -> None:
        if not self._initialised:
            self._initialise()
        else:
            self.reconcile()

    def _initialise(self) -> None:
        if not self.can_mutate:
            LOG.debug("Region support unavailable; skipping region initialisation.")
            return
        engine = self.engine
        for entry in REGIONS_EVENTS:
            lookup = partial(self._current_callback, entry.slot)
            self._aggregate.add(bridge(engine, entry.event, lookup, engine=engine, lookup=True))
        self._initialised = True

        for descriptor in self.props.regions.values():
            self._add_region(descriptor)
        LOG.debug("Initialised %d regions", len(self.props.regions))

    # ------------------------------------------------------------------ updates

    def update(self, next_props: Union[RegionProps, Mapping[str, Any]]) -> RegionDiff:
        """
        Accept new props and reconcile them when the engine is ready.
        """

        if not isinstance(next_props, RegionProps):
            next_props = RegionProps.from_dict(next_props, base=self.props)
        self.props = next_props
        if not self.mounted or not self.can_mutate:
            return RegionDiff()
        if not self._initialised:
            self._initialise()
            return RegionDiff(added=tuple(self.props.regions))
        return self.reconcile()

    def reconcile(self) -> RegionDiff:
        """
        Apply the minimal add/update/remove script against the live regions.
        """

        if not self.can_mutate:
            return RegionDiff()

        live: Dict[str, LiveRegion] = dict(self.engine.regions)
        desired = self.props.regions
        diff = diff_regions(live, desired)
        if diff.is_empty:
            return diff

        added = set(diff.added)
        updated = set(diff.updated)
        for region_id, descriptor in desired.items():
            if region_id in added:
                self._add_region(descriptor)
            elif region_id in updated:
                live[region_id].update({"start": descriptor.start, "end": descriptor.end})

        for region_id in diff.removed:
            live[region_id].remove()
            # engines that skip the remove event still get their listeners released
            self._release(region_id)

        LOG.debug(
            "Reconciled regions: +%d ~%d -%d", len(diff.added), len(diff.updated), len(diff.removed)
        )
        return diff

    # ------------------------------------------------------------------ per-region wiring

    def _add_region(self, descriptor: RegionDescriptor) -> LiveRegion:
        region = self.engine.add_region(descriptor.to_engine())
        self._hook_up_region_events(descriptor.id, region)
        return region

    def _hook_up_region_events(self, region_id: str, region: LiveRegion) -> None:
        self._release(region_id)
        engine = self.engine
        subscriptions = SubscriptionSet()
        for entry in REGION_EVENTS:
            lookup = partial(self._current_callback, entry.slot)
            subscriptions.add(
                bridge(region, entry.event, lookup, engine=engine, region=region, lookup=True)
            )
        # removal of the region itself tears down everything wired above
        subscriptions.add(listen(region, "remove", partial(self._on_region_removed, region_id, region)))
        self._per_region[region_id] = (region, subscriptions)

    def _on_region_removed(self, region_id: str, region: LiveRegion, *_args: Any) -> None:
        entry = self._per_region.get(region_id)
        if entry is None or entry[0] is not region:
            return
        self._release(region_id)

    def _release(self, region_id: str) -> None:
        entry = self._per_region.pop(region_id, None)
        if entry is not None:
            entry[1].dispose_all()

    def _current_callback(self, slot: str) -> Optional[Any]:
        return self.props.callback(slot)


__all__ = ["RegionDiff", "RegionReconciler", "diff_regions"]
