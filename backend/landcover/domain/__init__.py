"""Domain data structures and static catalogs.

Submodules:
    - models: Frozen dataclasses exchanged between components.
    - catalog: Segmentation classes, categories and lookup helpers.
"""
