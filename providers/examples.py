# ============================================================================
# EXAMPLE PROVIDERS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Examples - Offline provider implementations
# PURPOSE: Exercise recipes without calling an external service
# CREATED: 08 OCT 2026
# ============================================================================
"""
Example Providers

Offline providers for local development and tests.

- EchoProvider: returns the prompt back; fake media URLs for image/video
- ScriptedProvider: replays configured responses, optionally failing first
  and optionally streaming its text in small chunks
"""

import asyncio
import hashlib
import logging
from typing import Any, Dict, List, Optional

from core.errors import ProviderError
from providers.base import CapabilityProvider, ChunkCallback, GenerationResult
from providers.registry import register_provider

logger = logging.getLogger(__name__)


def _digest(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]


@register_provider("echo", description="Echoes prompts back, fake media URLs")
class EchoProvider(CapabilityProvider):
    """Deterministic provider: output is derived from the prompt."""

    provider_id = "echo"

    async def validate_config(self) -> None:
        return None

    async def generate_text(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        logger.debug(f"Echo text ({len(prompt)} chars)")
        return GenerationResult(
            text=prompt,
            usage={"prompt_chars": len(prompt), "completion_chars": len(prompt)},
            model=self.model_id,
        )

    async def generate_image(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        return GenerationResult(
            image_url=f"memory://echo/images/{_digest(prompt)}.png",
            model=self.model_id,
            raw={"revised_prompt": prompt},
        )

    async def generate_video(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        return GenerationResult(
            video_url=f"memory://echo/videos/{_digest(prompt)}.mp4",
            model=self.model_id,
            raw={"duration": options.get("duration", 5)},
        )


class ScriptedProvider(CapabilityProvider):
    """
    Replays scripted text responses.

    Config keys:
        responses:     list of texts returned in order (last one repeats)
        fail_times:    number of initial calls that raise ProviderError
        stream:        advertise streaming support
        chunk_size:    characters per streamed chunk
        delay_seconds: sleep before answering (timeout tests)
        image_url / video_url: media returned by image/video calls
    """

    provider_id = "scripted"

    def __init__(
        self,
        model_id: str = "scripted-1",
        config: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(model_id, config, credentials)
        self.responses: List[str] = list(self.config.get("responses") or [""])
        self.fail_times = int(self.config.get("fail_times", 0))
        self.chunk_size = max(1, int(self.config.get("chunk_size", 7)))
        self.delay_seconds = float(self.config.get("delay_seconds", 0))
        self.calls: List[str] = []

    async def validate_config(self) -> None:
        if not self.responses:
            raise ProviderError("ScriptedProvider needs at least one response")

    def supports_streaming(self) -> bool:
        return bool(self.config.get("stream", False))

    async def _next_response(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if len(self.calls) <= self.fail_times:
            raise ProviderError(f"Scripted failure {len(self.calls)} of {self.fail_times}")
        index = min(len(self.calls) - self.fail_times - 1, len(self.responses) - 1)
        return self.responses[index]

    async def generate_text(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        text = await self._next_response(prompt)
        return GenerationResult(text=text, model=self.model_id, usage={"calls": len(self.calls)})

    async def generate_text_stream(
        self,
        prompt: str,
        options: Dict[str, Any],
        on_chunk: ChunkCallback,
    ) -> GenerationResult:
        text = await self._next_response(prompt)
        for start in range(0, len(text), self.chunk_size):
            on_chunk(text[start:start + self.chunk_size])
            await asyncio.sleep(0)
        return GenerationResult(text=text, model=self.model_id, usage={"calls": len(self.calls)})

    async def generate_image(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        await self._next_response(prompt)
        return GenerationResult(
            image_url=self.config.get("image_url", "memory://scripted/image.png"),
            model=self.model_id,
        )

    async def generate_video(self, prompt: str, options: Dict[str, Any]) -> GenerationResult:
        await self._next_response(prompt)
        return GenerationResult(
            video_url=self.config.get("video_url", "memory://scripted/video.mp4"),
            model=self.model_id,
            raw={"duration": options.get("duration")},
        )


__all__ = ["EchoProvider", "ScriptedProvider"]
