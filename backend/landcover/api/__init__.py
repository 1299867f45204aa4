"""API router subpackage for the land-cover backend.

This package organizes REST endpoints by feature domain. Each module
exposes its own APIRouter for composition in the application's main
FastAPI instance.

Submodules:
    - coverage: Filtered coverage statistics, category roll-ups and
      period comparisons.
    - colors: Class and category color overrides.
    - masks: Mask overlay descriptors with reprojected bounds.
    - dependencies: Shared dependencies and error translation.
"""
