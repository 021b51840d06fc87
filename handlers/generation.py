# ============================================================================
# GENERATION ACTIONS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Text, image and video generation handlers
# PURPOSE: Build provider requests from node config and normalize results
# CREATED: 09 OCT 2026
# ============================================================================
"""
Generation Actions

One handler per generation node type. Each renders the node's prompt,
calls the matching provider method and normalizes the result.

Node config keys:
    prompt_template / system_prompt   see orchestrator.engine.templates
    options                           temperature, max_tokens, size, quality,
                                      duration, resolution, ...
    for_each                          input name of a list; the prompt is
                                      rendered once per element ({{ item }},
                                      {{ index }}) and the outputs collected
    output_format                     text nodes only: text | json | json_array
    required_fields                   json_array: fields every record must carry
    expected_count                    json_array: records expected (progress)

The node timeout bounds each provider call, so a for_each node gets the
full timeout per element. for_each under the skip policy records a failed
or timed-out element as {index, error} and carries on with the next element.
"""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from core.contracts import ErrorPolicy, NodeType
from core.errors import InputResolutionError, ParseError, ProviderTimeoutError
from handlers.normalizers import (
    normalize_image,
    normalize_text,
    normalize_video,
    parse_json_response,
)
from handlers.registry import ActionContext, ActionHandler, ActionOutput, register_action
from providers.base import CapabilityProvider
from streaming.decoder import ArrayRecordDecoder, decode_records, required_fields

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("text", "json", "json_array")


def _sum_usage(total: Dict[str, Any], usage: Optional[Dict[str, Any]]) -> None:
    for key, value in (usage or {}).items():
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            total[key] = total.get(key, 0) + value


class GenerationAction(ActionHandler):
    """Shared prompt building, per-call timeout and for_each handling."""

    times_own_calls = True

    async def run(self, ctx: ActionContext) -> ActionOutput:
        provider = ctx.require_provider()
        options = ctx.options()

        for_each = ctx.node.config.get("for_each")
        if for_each:
            return await self._run_for_each(ctx, provider, options, for_each)

        prompt = ctx.renderer.build_prompt(ctx.node, ctx.input)
        return await self._generate_within_timeout(ctx, provider, prompt, options)

    async def _generate_within_timeout(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        try:
            return await asyncio.wait_for(
                self.generate(ctx, provider, prompt, options), timeout=ctx.timeout
            )
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(
                f"Node {ctx.node.id} timed out after {ctx.timeout}s", node_id=ctx.node.id
            ) from None

    @abstractmethod
    async def generate(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        ...

    async def _run_for_each(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        options: Dict[str, Any],
        source: str,
    ) -> ActionOutput:
        items = ctx.input.get(source)
        if not isinstance(items, list):
            raise InputResolutionError(
                f"Node {ctx.node.id} for_each input '{source}' is not a list",
                node_id=ctx.node.id,
            )

        outputs: List[Any] = []
        usage: Dict[str, Any] = {}
        records = 0
        for index, item in enumerate(items):
            try:
                prompt = ctx.renderer.build_prompt(
                    ctx.node, ctx.input, {"item": item, "index": index}
                )
                result = await self._generate_within_timeout(ctx, provider, prompt, options)
            except Exception as e:
                if ctx.node.error_policy != ErrorPolicy.SKIP:
                    raise
                logger.warning(f"Node {ctx.node.id} element {index + 1}/{len(items)} failed: {e}")
                outputs.append({"index": index, "error": str(e)})
                continue
            outputs.append(result.output)
            _sum_usage(usage, result.usage)
            records += result.records_emitted

        logger.info(f"Node {ctx.node.id} generated {len(outputs)} outputs for {len(items)} elements")
        return ActionOutput(output=outputs, usage=usage or None, records_emitted=records)


@register_action(NodeType.TEXT_GENERATION, description="Text, JSON or streamed JSON records")
class TextGenerationAction(GenerationAction):

    async def generate(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        output_format = ctx.node.config.get("output_format", "text")
        if output_format not in OUTPUT_FORMATS:
            raise InputResolutionError(
                f"Node {ctx.node.id} has invalid output_format: {output_format}",
                node_id=ctx.node.id,
            )

        if output_format == "json_array":
            return await self._generate_records(ctx, provider, prompt, options)

        result = await provider.generate_text(prompt, options)
        text = normalize_text(result)
        output = parse_json_response(text) if output_format == "json" else text
        return ActionOutput(output=output, usage=result.usage or None)

    async def _generate_records(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        """
        Generate a JSON array of records.

        Streams through ArrayRecordDecoder when the provider supports it;
        otherwise decodes the complete response the same way.
        """
        fields = ctx.node.config.get("required_fields") or []
        validator = required_fields(*fields) if fields else None
        expected = ctx.node.config.get("expected_count") or ctx.input.get("count")
        try:
            expected = int(expected) if expected is not None else None
        except (TypeError, ValueError):
            expected = None
        progress_range = (ctx.streaming.progress_start, ctx.streaming.progress_end)

        if provider.supports_streaming() and ctx.streaming.prefer_streaming:
            decoder = ArrayRecordDecoder(
                validator=validator,
                on_record=ctx.record_callback(),
                expected_count=expected,
                progress_range=progress_range,
            )
            result = await provider.generate_text_stream(prompt, options, decoder.feed)
            records = decoder.finish()
            rejected = decoder.rejected_count
        else:
            result = await provider.generate_text(prompt, options)
            records = decode_records(
                normalize_text(result),
                validator=validator,
                on_record=ctx.record_callback(),
                expected_count=expected,
                progress_range=progress_range,
            )
            rejected = 0

        if not records:
            logger.error(
                f"Node {ctx.node.id}: response contained no valid records "
                f"(required_fields={fields}, rejected={rejected})"
            )
            raise ParseError(
                f"Node {ctx.node.id}: generation produced no valid records",
                node_id=ctx.node.id,
            )

        if expected and len(records) != expected:
            logger.warning(f"Node {ctx.node.id}: expected {expected} records, got {len(records)}")

        return ActionOutput(output=records, usage=result.usage or None, records_emitted=len(records))


@register_action(NodeType.IMAGE_GENERATION, description="Image URL from a prompt")
class ImageGenerationAction(GenerationAction):

    async def generate(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        result = await provider.generate_image(prompt, options)
        return ActionOutput(output=normalize_image(result), usage=result.usage or None)


@register_action(NodeType.VIDEO_GENERATION, description="Video URL from a prompt")
class VideoGenerationAction(GenerationAction):

    async def generate(
        self,
        ctx: ActionContext,
        provider: CapabilityProvider,
        prompt: str,
        options: Dict[str, Any],
    ) -> ActionOutput:
        result = await provider.generate_video(prompt, options)
        return ActionOutput(output=normalize_video(result), usage=result.usage or None)


__all__ = [
    "GenerationAction",
    "TextGenerationAction",
    "ImageGenerationAction",
    "VideoGenerationAction",
    "OUTPUT_FORMATS",
]
