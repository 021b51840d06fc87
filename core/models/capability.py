# ============================================================================
# CAPABILITY RESOLUTION MODEL
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core model - Resolved provider/model selection
# PURPOSE: Describe which provider serves a capability and where that came from
# CREATED: 07 OCT 2026
# EXPORTS: CapabilityResolution
# DEPENDENCIES: pydantic
# ============================================================================
"""
Capability Resolution Model

Produced by the CapabilityResolver for a (project, stage, capability) triple.
Project overrides and stage defaults are stored as plain documents of the
form {"provider": ..., "model": ..., "options": {...}}; `from_document`
accepts the editor spelling ({"adaptor": ..., "model": ...}) as well.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from core.contracts import CapabilitySource


class CapabilityResolution(BaseModel):
    """Provider/model pair selected for a capability."""
    provider: str = Field(..., max_length=64)
    model_id: str = Field(..., max_length=128)
    source: CapabilitySource
    options: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_document(
        cls,
        document: Optional[Dict[str, Any]],
        source: CapabilitySource,
    ) -> Optional["CapabilityResolution"]:
        """Build from a store document, None if it names no provider."""
        if not document:
            return None
        provider = document.get("provider") or document.get("adaptor") or document.get("adaptorId")
        model_id = document.get("model") or document.get("model_id") or document.get("modelId")
        if not provider or not model_id:
            return None
        return cls(
            provider=provider,
            model_id=model_id,
            source=source,
            options=dict(document.get("options") or document.get("config") or {}),
        )


__all__ = ["CapabilityResolution"]
