"""User-defined display colors for classes and categories.

The registry keeps two independent override tables: one keyed by class
display name, one keyed by category display name. Writing one table never
touches the other. Both tables are persisted as JSON objects under their
own key in an injected key-value store, so overrides survive restarts.

The registry also builds the class-to-color map sent to the mask provider
when masks are regenerated. In "categories" mode every member class gets
the color of its category, so the provider can recolor by category without
knowing what a category is.

Example:
    Override colors and build a rendering map:
        >>> from landcover.db import database
        >>> from landcover.services.colors import ClassColorRegistry
        >>> registry = ClassColorRegistry(database.InMemoryKeyValueStore())
        >>> registry.set_class_color("Césped", "#00FF00")
        >>> registry.get_rendering_color_map("classes")
        {'Césped': '#00FF00'}
        >>> registry.get_rendering_color_map("categories")["Césped"]
        '#2D5016'
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from landcover.db import database
from landcover.domain import catalog

if TYPE_CHECKING:
    from landcover.domain import models

logger = logging.getLogger(__name__)

CLASS_COLORS_KEY = "landcover.class_colors"
CATEGORY_COLORS_KEY = "landcover.category_colors"


def _decode_color_map(raw: str | None, key: str) -> dict[str, str]:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Ignoring corrupt color overrides under %r: %s", key, exc)
        return {}
    if not isinstance(decoded, dict):
        logger.error("Ignoring color overrides under %r: not an object", key)
        return {}
    return {
        str(name): color
        for name, color in decoded.items()
        if isinstance(color, str)
    }


class ClassColorRegistry:
    """Class-level and category-level color overrides.

    Args:
        store: Key-value store holding the two serialized maps.
    """

    def __init__(self, store: database.KeyValueStoreProtocol) -> None:
        self._store = store
        self._class_colors = self._load(CLASS_COLORS_KEY)
        self._category_colors = self._load(CATEGORY_COLORS_KEY)

    def _load(self, key: str) -> dict[str, str]:
        try:
            raw = self._store.get(key)
        except database.StoreError as exc:
            logger.error("Cannot load color overrides %r: %s", key, exc)
            return {}
        return _decode_color_map(raw, key)

    def _save(self, key: str, colors: dict[str, str]) -> None:
        self._store.set(key, json.dumps(colors, ensure_ascii=False, sort_keys=True))

    def get_class_color(self, class_name: str) -> str | None:
        return self._class_colors.get(class_name)

    def set_class_color(self, class_name: str, color: str) -> None:
        """Persist a class override.

        Raises:
            StoreError: If the store rejects the write; the override is
                then not applied.
        """
        updated = {**self._class_colors, class_name: color}
        self._save(CLASS_COLORS_KEY, updated)
        self._class_colors = updated

    def get_category_color(self, category_name: str) -> str | None:
        return self._category_colors.get(category_name)

    def set_category_color(self, category_name: str, color: str) -> None:
        updated = {**self._category_colors, category_name: color}
        self._save(CATEGORY_COLORS_KEY, updated)
        self._category_colors = updated

    def get_all_class_colors(self) -> dict[str, str]:
        return dict(self._class_colors)

    def get_all_category_colors(self) -> dict[str, str]:
        return dict(self._category_colors)

    def clear_class_colors(self) -> None:
        self._save(CLASS_COLORS_KEY, {})
        self._class_colors = {}

    def clear_category_colors(self) -> None:
        self._save(CATEGORY_COLORS_KEY, {})
        self._category_colors = {}

    def effective_class_color(self, class_name: str) -> str:
        """Override if set, else the catalog color, else a neutral gray."""
        override = self._class_colors.get(class_name)
        if override:
            return override
        class_id = catalog.resolve_class_id(class_name)
        if class_id is None:
            return catalog.FALLBACK_CLASS_COLOR
        return catalog.get_class_config(class_id).color

    def effective_category_color(self, category: models.Category) -> str:
        return self._category_colors.get(category.name) or category.default_color

    def get_rendering_color_map(
        self,
        mode: models.ColorMode = "classes",
    ) -> dict[str, str]:
        """Build the class-name to color map used to render masks.

        Args:
            mode: "classes" returns the class overrides verbatim;
                "categories" assigns every member class the effective color
                of its category.

        Returns:
            Mapping of class display name to color.

        Raises:
            ValueError: If ``mode`` is not recognized.
        """
        if mode == "classes":
            return dict(self._class_colors)
        if mode != "categories":
            raise ValueError(f"Unknown color mode: {mode!r}")

        colors: dict[str, str] = {}
        for category in catalog.COVERAGE_CATEGORIES:
            color = self.effective_category_color(category)
            for class_name in sorted(category.member_class_names):
                colors[class_name] = color
        return colors
