"""Lifecycle management of geo-referenced mask overlays.

The manager owns the raster layers currently shown on a map. It works in
one of two mutually exclusive modes:

- ``SCENE``: a single mask for one scene, optionally restricted to a class
  selection. Changing the selection reloads the mask of the same scene.
- ``PERIOD``: one mask per scene of a region over a year-month period,
  rendered with the colors of the ClassColorRegistry.

Each mode moves through ``EMPTY -> LOADING -> DISPLAYED -> (LOADING |
EMPTY)``. A busy flag rejects a second load for a mode while one is in
flight, so two fetches can never install their layers out of order.
In-flight fetches are never cancelled; instead a generation token captured
before the fetch is compared afterwards and superseded results are dropped.

A failed fetch leaves the current display untouched. Layers of an old scene
or period are removed as soon as another one is requested, and every
installed layer is removed through the map surface before a replacement of
the same mode is installed.

Example:
    Drive a manager against a map surface:
        >>> manager = MaskOverlayManager(provider, surface, colors=registry)
        >>> result = await manager.load_scene_mask(scene_id, ["grass"])
        >>> result.status
        <LoadStatus.LOADED: 'loaded'>
        >>> manager.set_opacity(0.4)
        >>> await manager.load_period_masks("campus", "2025-10")
        >>> manager.active_mode
        <OverlayMode.PERIOD: 'period'>
"""

from __future__ import annotations

import dataclasses
import functools
import json
import logging
from collections.abc import Callable, Hashable, Sequence
from typing import TYPE_CHECKING, Protocol

from landcover.clients import segmentation
from landcover.domain import catalog, models
from landcover.services import reprojection

if TYPE_CHECKING:
    from landcover.services import colors as colors_service

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[models.OverlaySnapshot], None]


class MapSurface(Protocol):
    """Map component receiving overlay layers.

    ``add_overlay`` returns an opaque handle used for every later call on
    the same layer.
    """

    def add_overlay(self, layer: models.MaskLayerDescriptor) -> Hashable: ...

    def remove_overlay(self, handle: Hashable) -> None: ...

    def set_overlay_opacity(self, handle: Hashable, opacity: float) -> None: ...

    def set_overlay_visible(self, handle: Hashable, visible: bool) -> None: ...

    def fit_bounds(self, bounds: models.LatLngBounds) -> None: ...


@dataclasses.dataclass
class _InstalledLayer:
    handle: Hashable
    descriptor: models.MaskLayerDescriptor


@dataclasses.dataclass
class _ModeSlot:
    """Mutable per-mode state.

    ``subject`` identifies the overlay session (scene id or region/period);
    ``centered_once`` is reset whenever the subject changes.
    """

    layers: list[_InstalledLayer] = dataclasses.field(default_factory=list)
    loading: bool = False
    subject: str | None = None
    last_key: str | None = None
    centered_once: bool = False

    @property
    def state(self) -> models.OverlayState:
        if self.loading:
            return models.OverlayState.LOADING
        if self.layers:
            return models.OverlayState.DISPLAYED
        return models.OverlayState.EMPTY


def class_indices_param(class_ids: Sequence[str]) -> str | None:
    """Comma-separated numeric indices of the given class ids.

    Unknown ids are ignored. Returns None when nothing is selected.
    """
    indices = sorted(
        {
            index
            for index in (catalog.class_index_for_id(c) for c in class_ids)
            if index is not None
        }
    )
    if not indices:
        return None
    return ",".join(str(index) for index in indices)


def _selection_key(subject: str, **selection: object) -> str:
    return json.dumps(
        {"subject": subject, **selection},
        sort_keys=True,
        ensure_ascii=False,
    )


def _union(layers: Sequence[models.MaskLayerDescriptor]) -> models.LatLngBounds:
    return functools.reduce(
        lambda acc, bounds: acc.union(bounds),
        (layer.bounds for layer in layers[1:]),
        layers[0].bounds,
    )


class MaskOverlayManager:
    """Owns the mask layers displayed on a map surface.

    Args:
        provider: Mask provider.
        surface: Map component the layers are installed on.
        reprojector: Bounds reprojector, a default one when omitted.
        colors: Color registry used to build period rendering colors.
        opacity: Initial opacity of installed layers, clamped to [0, 1].
        visible: Initial visibility of installed layers.
    """

    def __init__(
        self,
        provider: segmentation.SegmentationProviderProtocol,
        surface: MapSurface,
        reprojector: reprojection.CoordinateReprojector | None = None,
        colors: colors_service.ClassColorRegistry | None = None,
        opacity: float = 0.7,
        visible: bool = True,
    ) -> None:
        self._provider = provider
        self._surface = surface
        self._reprojector = reprojector or reprojection.CoordinateReprojector()
        self._colors = colors
        self._opacity = min(max(opacity, 0.0), 1.0)
        self._visible = visible
        self._slots = {mode: _ModeSlot() for mode in models.OverlayMode}
        self._active: models.OverlayMode | None = None
        self._generation = 0
        self._listeners: list[SnapshotListener] = []

    @property
    def active_mode(self) -> models.OverlayMode | None:
        return self._active

    @property
    def opacity(self) -> float:
        return self._opacity

    @property
    def visible(self) -> bool:
        return self._visible

    def state(self, mode: models.OverlayMode | None = None) -> models.OverlayState:
        """State of ``mode``, or of the active mode when omitted."""
        mode = mode or self._active
        if mode is None:
            return models.OverlayState.EMPTY
        return self._slots[mode].state

    @property
    def layers(self) -> tuple[models.MaskLayerDescriptor, ...]:
        if self._active is None:
            return ()
        return tuple(layer.descriptor for layer in self._slots[self._active].layers)

    def snapshot(self) -> models.OverlaySnapshot:
        return models.OverlaySnapshot(
            mode=self._active,
            state=self.state(),
            layers=self.layers,
            opacity=self._opacity,
            visible=self._visible,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns:
            A function removing the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Overlay listener %r failed", listener)

    def _remove_layers(self, slot: _ModeSlot) -> None:
        for layer in slot.layers:
            self._surface.remove_overlay(layer.handle)
        slot.layers.clear()

    def _reset(self, slot: _ModeSlot, subject: str | None) -> None:
        """Remove the layers of ``slot`` and start a new overlay session."""
        self._remove_layers(slot)
        slot.subject = subject
        slot.last_key = None
        slot.centered_once = False
        self._generation += 1

    def _activate(self, mode: models.OverlayMode) -> None:
        if self._active is not None and self._active is not mode:
            logger.debug("Switching overlays from %s to %s", self._active, mode)
            self._reset(self._slots[self._active], None)
        self._active = mode

    def _is_stale(self, mode: models.OverlayMode, token: int) -> bool:
        return self._generation != token or self._active is not mode

    def _build_layer(
        self,
        record: models.MaskRecord,
    ) -> models.MaskLayerDescriptor | None:
        if record.image is None or record.bounds is None:
            return None
        return models.MaskLayerDescriptor(
            bounds=self._reprojector.normalize_bounds(record.bounds, record.crs),
            image=record.image,
            opacity=self._opacity,
        )

    def _install(
        self,
        slot: _ModeSlot,
        layers: Sequence[models.MaskLayerDescriptor],
        key: str,
    ) -> None:
        self._remove_layers(slot)
        for descriptor in layers:
            handle = self._surface.add_overlay(descriptor)
            if not self._visible:
                self._surface.set_overlay_visible(handle, False)
            slot.layers.append(_InstalledLayer(handle, descriptor))
        slot.last_key = key

        if not slot.centered_once:
            self._surface.fit_bounds(_union(layers))
            slot.centered_once = True

    async def load_scene_mask(
        self,
        scene_id: str,
        selected_class_ids: Sequence[str] = (),
    ) -> models.LoadResult:
        """Show the mask of one scene, restricted to the selected classes.

        A different scene than the one displayed removes the current layer
        before fetching. Reloading the same scene with another selection
        keeps the current layer until the new one is available, and never
        re-centers the map.

        Args:
            scene_id: Scene UUID.
            selected_class_ids: Class ids to render; empty for all classes.

        Returns:
            LoadResult describing the outcome.
        """
        try:
            scene_id = segmentation.validate_scene_id(scene_id)
        except segmentation.InvalidIdentifierError as exc:
            logger.warning("Rejected scene mask request: %s", exc)
            return models.LoadResult(models.LoadStatus.INVALID, message=str(exc))

        mode = models.OverlayMode.SCENE
        self._activate(mode)
        slot = self._slots[mode]
        if slot.loading:
            return models.LoadResult(models.LoadStatus.BUSY, self.layers)

        key = _selection_key(scene_id, classes=sorted(set(selected_class_ids)))
        if slot.last_key == key and slot.layers:
            return models.LoadResult(models.LoadStatus.UNCHANGED, self.layers)

        if slot.subject != scene_id:
            self._reset(slot, scene_id)
        token = self._generation

        slot.loading = True
        self._notify()
        try:
            return await self._fetch_scene(
                slot, token, scene_id, selected_class_ids, key
            )
        finally:
            slot.loading = False
            self._notify()

    async def _fetch_scene(
        self,
        slot: _ModeSlot,
        token: int,
        scene_id: str,
        selected_class_ids: Sequence[str],
        key: str,
    ) -> models.LoadResult:
        mode = models.OverlayMode.SCENE
        try:
            record = await self._provider.get_scene_mask(
                scene_id, class_indices_param(selected_class_ids)
            )
        except segmentation.ProviderError as exc:
            logger.warning("Scene mask fetch for %s failed: %s", scene_id, exc)
            return models.LoadResult(
                models.LoadStatus.FAILED, self.layers, message=str(exc)
            )

        if self._is_stale(mode, token):
            logger.info("Discarding superseded mask of scene %s", scene_id)
            return models.LoadResult(models.LoadStatus.STALE, self.layers)

        layer = self._build_layer(record)
        if layer is None:
            logger.warning("Scene mask of %s has no image or bounds", scene_id)
            return models.LoadResult(
                models.LoadStatus.FAILED,
                self.layers,
                message="Mask response is missing image or bounds",
            )

        self._install(slot, [layer], key)
        logger.info("Displayed mask of scene %s", scene_id)
        return models.LoadResult(models.LoadStatus.LOADED, self.layers)

    async def load_period_masks(
        self,
        region_id: str,
        period: str,
        color_mode: models.ColorMode = "classes",
        transparent_unlabeled: bool = True,
    ) -> models.LoadResult:
        """Show the masks of every scene of a region over a period.

        Rendering colors come from the color registry in ``color_mode``, so
        a color change triggers a new fetch on the next call. All layers are
        replaced at once and the map is centered over their union the first
        time the period is shown.

        Args:
            region_id: Region identifier.
            period: Year-month bucket (``YYYY-MM``).
            color_mode: "classes" or "categories" rendering colors.
            transparent_unlabeled: Render unlabeled pixels transparent.

        Returns:
            LoadResult describing the outcome.
        """
        try:
            segmentation.validate_region_id(region_id)
            segmentation.validate_period(period)
        except segmentation.InvalidIdentifierError as exc:
            logger.warning("Rejected period masks request: %s", exc)
            return models.LoadResult(models.LoadStatus.INVALID, message=str(exc))

        mode = models.OverlayMode.PERIOD
        self._activate(mode)
        slot = self._slots[mode]
        if slot.loading:
            return models.LoadResult(models.LoadStatus.BUSY, self.layers)

        colors = (
            self._colors.get_rendering_color_map(color_mode) if self._colors else {}
        )
        subject = f"{region_id}/{period}"
        key = _selection_key(
            subject, colors=colors, transparent_unlabeled=transparent_unlabeled
        )
        if slot.last_key == key and slot.layers:
            return models.LoadResult(models.LoadStatus.UNCHANGED, self.layers)

        if slot.subject != subject:
            self._reset(slot, subject)
        token = self._generation

        slot.loading = True
        self._notify()
        try:
            return await self._fetch_period(
                slot, token, region_id, period, colors, transparent_unlabeled, key
            )
        finally:
            slot.loading = False
            self._notify()

    async def _fetch_period(
        self,
        slot: _ModeSlot,
        token: int,
        region_id: str,
        period: str,
        colors: dict[str, str],
        transparent_unlabeled: bool,
        key: str,
    ) -> models.LoadResult:
        mode = models.OverlayMode.PERIOD
        try:
            records = await self._provider.get_period_masks(
                region_id,
                period,
                colors=colors or None,
                transparent_unlabeled=transparent_unlabeled,
            )
        except segmentation.ProviderError as exc:
            logger.warning(
                "Period masks fetch for %s %s failed: %s", region_id, period, exc
            )
            return models.LoadResult(
                models.LoadStatus.FAILED, self.layers, message=str(exc)
            )

        if self._is_stale(mode, token):
            logger.info("Discarding superseded masks of %s %s", region_id, period)
            return models.LoadResult(models.LoadStatus.STALE, self.layers)

        layers = []
        for record in records:
            layer = self._build_layer(record)
            if layer is None:
                logger.warning(
                    "Skipping period mask without image or bounds (%s %s)",
                    region_id,
                    period,
                )
                continue
            layers.append(layer)

        if not layers:
            return models.LoadResult(
                models.LoadStatus.FAILED,
                self.layers,
                message=f"No usable masks for {region_id} {period}",
            )

        self._install(slot, layers, key)
        logger.info("Displayed %d masks of %s %s", len(layers), region_id, period)
        return models.LoadResult(models.LoadStatus.LOADED, self.layers)

    def set_opacity(self, value: float) -> None:
        """Apply an opacity, clamped to [0, 1], to every active layer."""
        self._opacity = min(max(float(value), 0.0), 1.0)
        if self._active is not None:
            for layer in self._slots[self._active].layers:
                self._surface.set_overlay_opacity(layer.handle, self._opacity)
                layer.descriptor = dataclasses.replace(
                    layer.descriptor, opacity=self._opacity
                )
        self._notify()

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        if self._active is not None:
            for layer in self._slots[self._active].layers:
                self._surface.set_overlay_visible(layer.handle, visible)
        self._notify()

    def clear(self) -> None:
        """Remove every layer and end the current overlay sessions."""
        for slot in self._slots.values():
            self._reset(slot, None)
        self._active = None
        self._notify()
