"""Land-cover coverage aggregation and mask-overlay engine.

This package turns per-class segmentation statistics of a campus into
area and percentage summaries, regroups them into higher-level categories,
normalizes the geographic bounds of mask rasters, and manages the lifecycle
of the raster overlays displayed on a map.

- Coverage statistics are filtered by class or category selections and
  rolled up into categories with consistent percentage renormalization
- Mask bounds reported in UTM zones are reprojected to WGS84 on a
  best-effort basis
- Display colors can be overridden per class and per category and are
  stored durably through a key-value store
- A FastAPI surface exposes coverage, colors and normalized mask layers

See module sub-docstrings for details on architecture and usage.
"""
