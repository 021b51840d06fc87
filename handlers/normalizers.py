# ============================================================================
# OUTPUT NORMALIZERS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Provider output normalization
# PURPOSE: Turn GenerationResults into the shapes downstream nodes consume
# CREATED: 09 OCT 2026
# ============================================================================
"""
Output Normalizers

Text responses frequently arrive wrapped in markdown fences or with a
preamble. parse_json_response tries, in order:

    1. the whole text as JSON
    2. the first ```json ... ``` (or bare ```) fenced block
    3. the raw text (logged as a warning)

Image and video results are reduced to small dicts; a result without the
expected URL is a ParseError.
"""

import json
import logging
import re
from typing import Any, Dict

from core.errors import ParseError
from providers.base import GenerationResult

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def parse_json_response(text: str) -> Any:
    """Parse JSON from a model response, falling back to the raw text."""
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError):
        pass

    match = _FENCED_BLOCK.search(text or "")
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            logger.warning("Failed to parse JSON from markdown block")

    logger.warning("Response is not valid JSON, returning as text")
    return text


def normalize_text(result: GenerationResult) -> str:
    if result.text is None:
        raise ParseError("Provider returned no text")
    return result.text


def normalize_image(result: GenerationResult) -> Dict[str, Any]:
    if not result.image_url:
        raise ParseError("Provider returned no image URL")
    output: Dict[str, Any] = {"image_url": result.image_url}
    if result.raw.get("revised_prompt"):
        output["revised_prompt"] = result.raw["revised_prompt"]
    return output


def normalize_video(result: GenerationResult) -> Dict[str, Any]:
    if not result.video_url:
        raise ParseError("Provider returned no video URL")
    output: Dict[str, Any] = {"video_url": result.video_url}
    if result.raw.get("duration") is not None:
        output["duration"] = result.raw["duration"]
    return output


__all__ = [
    "parse_json_response",
    "normalize_text",
    "normalize_image",
    "normalize_video",
]
