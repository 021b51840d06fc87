# ============================================================================
# CAPABILITY PROVIDER INTERFACE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Provider contract
# PURPOSE: One async interface every generation service implements
# CREATED: 08 OCT 2026
# ============================================================================
"""
Capability Provider Interface

A provider adapts one external generation service (Gemini, OpenAI, ...) to
the capabilities recipes use. The engine never sees a vendor SDK; it only
calls this interface.

Contract:
- generate_text / generate_image / generate_video return a GenerationResult
- A provider that lacks a capability raises UnsupportedCapabilityError,
  never an empty or garbage result
- supports_streaming() providers implement generate_text_stream, calling
  on_chunk once per raw text chunk as it arrives
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from core.errors import UnsupportedCapabilityError

logger = logging.getLogger(__name__)


ChunkCallback = Callable[[str], None]


@dataclass
class GenerationResult:
    """Normalized result of a provider call."""
    text: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)
    model: Optional[str] = None

    # Provider-specific extras (revised prompt, duration, finish reason, ...)
    raw: Dict[str, Any] = field(default_factory=dict)


class CapabilityProvider(ABC):
    """
    Abstract base class for capability providers.

    Subclasses set `provider_id` and override the capabilities they support.
    """

    provider_id: str = ""

    def __init__(
        self,
        model_id: str,
        config: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Any]] = None,
    ):
        self.model_id = model_id
        self.config = dict(config or {})
        self.credentials = dict(credentials or {})

    async def generate_text(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        raise UnsupportedCapabilityError(self.provider_id, "text generation")

    async def generate_image(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        raise UnsupportedCapabilityError(self.provider_id, "image generation")

    async def generate_video(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        raise UnsupportedCapabilityError(self.provider_id, "video generation")

    def supports_streaming(self) -> bool:
        """Whether generate_text_stream delivers incremental chunks."""
        return False

    async def generate_text_stream(
        self,
        prompt: str,
        options: Dict[str, Any],
        on_chunk: ChunkCallback,
    ) -> GenerationResult:
        """
        Stream text, invoking on_chunk per raw chunk.

        Returns the complete result once the stream ends.
        """
        raise UnsupportedCapabilityError(self.provider_id, "streaming text generation")

    @abstractmethod
    async def validate_config(self) -> None:
        """Raise if credentials or configuration are unusable."""

    async def health_check(self) -> bool:
        """Cheap reachability check used by ProviderRegistry.list_available."""
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} provider={self.provider_id} model={self.model_id}>"


__all__ = ["CapabilityProvider", "GenerationResult", "ChunkCallback"]
