"""Engine components.

Submodules:
    - reprojection: Raster bounds reprojection to WGS84.
    - colors: Class and category color overrides.
    - aggregation: Category roll-ups and comparative figures.
    - coverage_filter: Coverage report construction and filtering.
    - overlays: Mask overlay lifecycle management.
"""
