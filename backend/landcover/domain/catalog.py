"""Static catalogs of segmentation classes and coverage categories.

The segmentation model assigns every pixel one of 24 classes. Upstream
services are inconsistent about how they report a class: some send the
numeric index produced by the model, some the machine id (``"grass"``) and
some the Spanish display name (``"Césped"``). The lookup helpers in this
module reconcile the three forms.

Example:
    Resolve the different encodings of the same class:
        >>> from landcover.domain import catalog
        >>> catalog.class_id_for_index(3)
        'grass'
        >>> catalog.class_id_for_name("Césped")
        'grass'
        >>> catalog.resolve_class_id("grass")
        'grass'
"""

from __future__ import annotations

from landcover.domain import models

UNLABELED_CLASS_ID = "unlabeled"
FALLBACK_CLASS_COLOR = "#999999"

CLASS_CATALOG: tuple[models.ClassConfig, ...] = (
    models.ClassConfig("unlabeled", "Sin etiqueta", "#000000", "Sin etiqueta"),
    models.ClassConfig("paved-area", "Área pavimentada", "#804080", "Área pavimentada"),
    models.ClassConfig("dirt", "Tierra", "#824C00", "Tierra/suelo desnudo"),
    models.ClassConfig("grass", "Césped", "#006600", "Césped"),
    models.ClassConfig("gravel", "Grava", "#706757", "Grava"),
    models.ClassConfig("water", "Agua", "#1C2AA8", "Agua"),
    models.ClassConfig("rocks", "Rocas", "#30291E", "Rocas"),
    models.ClassConfig("pool", "Piscina", "#003259", "Piscina"),
    models.ClassConfig("vegetation", "Vegetación", "#6B8E23", "Vegetación"),
    models.ClassConfig("roof", "Techo", "#464646", "Techo"),
    models.ClassConfig("wall", "Pared", "#66669C", "Pared/muro"),
    models.ClassConfig("window", "Ventana", "#FEE40C", "Ventana"),
    models.ClassConfig("door", "Puerta", "#FE940C", "Puerta"),
    models.ClassConfig("fence", "Cerca", "#BE9999", "Cerca"),
    models.ClassConfig("fence-pole", "Poste de cerca", "#999999", "Poste de cerca"),
    models.ClassConfig("person", "Persona", "#FF1660", "Persona"),
    models.ClassConfig("dog", "Perro", "#663300", "Perro"),
    models.ClassConfig("car", "Automóvil", "#098F96", "Automóvil"),
    models.ClassConfig("bicycle", "Bicicleta", "#770B20", "Bicicleta"),
    models.ClassConfig("tree", "Árbol", "#333300", "Árbol"),
    models.ClassConfig("bald-tree", "Árbol sin hojas", "#BEFABE", "Árbol sin hojas"),
    models.ClassConfig("ar-marker", "Marcador AR", "#709692", "Marcador AR"),
    models.ClassConfig("obstacle", "Obstáculo", "#028773", "Obstáculo"),
    models.ClassConfig("conflicting", "Conflicto", "#FF0000", "Conflicto"),
)

# The model emits class indices in catalog order.
CLASS_IDS_BY_INDEX: tuple[str, ...] = tuple(c.id for c in CLASS_CATALOG)

CLASS_NAME_TO_ID: dict[str, str] = {c.name: c.id for c in CLASS_CATALOG}

_CLASSES_BY_ID: dict[str, models.ClassConfig] = {c.id: c for c in CLASS_CATALOG}

COVERAGE_CATEGORIES: tuple[models.Category, ...] = (
    models.Category(
        id="vegetation",
        name="Cobertura natural",
        member_class_names=frozenset(
            {"Césped", "Vegetación", "Árbol", "Árbol sin hojas", "Rocas", "Tierra"}
        ),
        default_color="#2D5016",
    ),
    models.Category(
        id="infrastructure",
        name="Infraestructura construida",
        member_class_names=frozenset(
            {
                "Área pavimentada",
                "Pared",
                "Techo",
                "Cerca",
                "Puerta",
                "Ventana",
                "Poste de cerca",
                "Obstáculo",
                "Grava",
            }
        ),
        default_color="#CCCCCC",
    ),
    models.Category(
        id="water",
        name="Cuerpos de agua",
        member_class_names=frozenset({"Agua", "Piscina"}),
        default_color="#1C2AA8",
    ),
    models.Category(
        id="transport",
        name="Transporte y movilidad",
        member_class_names=frozenset({"Automóvil", "Bicicleta"}),
        default_color="#098F96",
    ),
    models.Category(
        id="social",
        name="Elementos sociales",
        member_class_names=frozenset({"Persona", "Perro"}),
        default_color="#FF1660",
    ),
    models.Category(
        id="miscellaneous",
        name="Misceláneos",
        member_class_names=frozenset({"Conflicto", "Marcador AR"}),
        default_color="#D4A574",
    ),
)

GREEN_AREA_CLASS_NAMES: frozenset[str] = frozenset(
    {"Vegetación", "Césped", "Árbol", "Árbol sin hojas"}
)


def class_id_for_index(index: int) -> str | None:
    """Map a numeric model index to its class id, None when out of range."""
    if 0 <= index < len(CLASS_IDS_BY_INDEX):
        return CLASS_IDS_BY_INDEX[index]
    return None


def class_index_for_id(class_id: str) -> int | None:
    try:
        return CLASS_IDS_BY_INDEX.index(class_id)
    except ValueError:
        return None


def class_id_for_name(name: str) -> str | None:
    """Map a display name to its class id through the fixed name table."""
    return CLASS_NAME_TO_ID.get(name)


def resolve_class_id(label: str) -> str | None:
    """Resolve a class label given either as display name or as machine id.

    Args:
        label: Display name ("Césped") or machine id ("grass").

    Returns:
        The class id, or None when the label is not in the catalog.
    """
    if label in CLASS_NAME_TO_ID:
        return CLASS_NAME_TO_ID[label]
    if label in _CLASSES_BY_ID:
        return label
    return None


def get_class_config(class_id: str) -> models.ClassConfig:
    """Return the catalog entry for a class, or a neutral placeholder."""
    config = _CLASSES_BY_ID.get(class_id)
    if config is None:
        return models.ClassConfig(
            id=class_id,
            name=class_id,
            color=FALLBACK_CLASS_COLOR,
            description="Clase desconocida",
        )
    return config


def slugify_class_name(name: str) -> str:
    """Derive a machine-style id from a label unknown to the catalog."""
    return "-".join(name.lower().split())


def get_category(category_id: str) -> models.Category | None:
    for category in COVERAGE_CATEGORIES:
        if category.id == category_id:
            return category
    return None


def get_category_by_name(name: str) -> models.Category | None:
    for category in COVERAGE_CATEGORIES:
        if category.name == name:
            return category
    return None


def category_class_ids(category: models.Category) -> frozenset[str]:
    """Class ids of the members of a category."""
    return frozenset(
        CLASS_NAME_TO_ID[name]
        for name in category.member_class_names
        if name in CLASS_NAME_TO_ID
    )


def find_category_for_class(label: str) -> models.Category | None:
    """Find the (at most one) category containing a class.

    Membership is decided by display name; a machine id is first resolved
    to its display name so either encoding matches.
    """
    class_id = resolve_class_id(label)
    name = _CLASSES_BY_ID[class_id].name if class_id else label
    for category in COVERAGE_CATEGORIES:
        if name in category.member_class_names:
            return category
    return None
