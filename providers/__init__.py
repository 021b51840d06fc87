# ============================================================================
# PROVIDERS MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Capability providers
# PURPOSE: Provider interface, registry and offline examples
# CREATED: 08 OCT 2026
# ============================================================================

from providers.base import CapabilityProvider, ChunkCallback, GenerationResult
from providers.registry import (
    DuplicateProviderError,
    ProviderRegistry,
    get_registry,
    register_provider,
)

# Import for side effects: registers the offline "echo" provider
from providers import examples  # noqa: F401
from providers.examples import EchoProvider, ScriptedProvider

__all__ = [
    "CapabilityProvider",
    "ChunkCallback",
    "GenerationResult",
    "DuplicateProviderError",
    "ProviderRegistry",
    "get_registry",
    "register_provider",
    "EchoProvider",
    "ScriptedProvider",
]
