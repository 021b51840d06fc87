# ============================================================================
# VERSION - RECIPE ENGINE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# ============================================================================
"""
Version information for the recipe engine.

This is the single source of truth for the package version.
"""
# Version format: major.minor.patch
__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

BUILD_DATE = "2026-10-19"
EPOCH = 1
CODENAME = "Recipe Engine"
