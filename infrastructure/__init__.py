# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Infrastructure - Storage operations
# PURPOSE: Blob storage for generated media
# CREATED: 08 OCT 2026
# ============================================================================
"""
Infrastructure module for the recipe engine.

Provides:
- BlobStore: contract for persisting generated media
- InMemoryBlobStore: process-local implementation

Usage:
    from infrastructure import InMemoryBlobStore

    blobs = InMemoryBlobStore()
    descriptor = await blobs.upload("generated", "personas/p1.png", data)
"""

from .storage import BlobStore, InMemoryBlobStore, detect_content_type

__all__ = [
    "BlobStore",
    "InMemoryBlobStore",
    "detect_content_type",
]
