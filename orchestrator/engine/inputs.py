# ============================================================================
# INPUT RESOLUTION
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Node input assembly
# PURPOSE: Turn a node's input_mapping into concrete values
# CREATED: 07 OCT 2026
# ============================================================================
"""
Input Resolution

Each entry of a node's input_mapping is a source expression:

    external_input.<path>   dotted lookup into the run's external input
    external_input          the whole external input
    <outputKey>.output...   accumulated output of an upstream node
    <outputKey>             accumulated output of an upstream node
    anything else           passed through as a literal value

Examples:
    input_mapping:
      topic: external_input.brief.topic
      persona: persona_details
      style: "watercolor"

Unresolvable references log a warning and resolve to None. With strict=True
they raise InputResolutionError instead.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from core.errors import InputResolutionError

logger = logging.getLogger(__name__)

EXTERNAL_PREFIX = "external_input"
OUTPUT_MARKER = ".output"

_MISSING = object()


def get_nested_value(data: Any, path: str) -> Any:
    """
    Dotted-path lookup through dicts and lists.

    Returns the _MISSING sentinel when any segment is absent.
    """
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            if not -len(current) <= index < len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _unresolved(key: str, source: str, reason: str, strict: bool) -> None:
    message = f"Could not resolve input mapping '{key}' from '{source}': {reason}"
    if strict:
        raise InputResolutionError(message)
    logger.warning(message)
    return None


def resolve_inputs(
    input_mapping: Optional[Mapping[str, Any]],
    prior_outputs: Mapping[str, Any],
    external_input: Optional[Mapping[str, Any]],
    strict: bool = False,
) -> Dict[str, Any]:
    """
    Resolve a node's input mapping.

    Args:
        input_mapping: param name -> source expression
        prior_outputs: outputs of completed nodes, keyed by output_key
        external_input: the run's external input
        strict: raise on unresolved references instead of warning

    Returns:
        param name -> resolved value

    Raises:
        InputResolutionError: strict mode and a reference could not be resolved
    """
    resolved: Dict[str, Any] = {}
    if not input_mapping:
        return resolved

    external_input = external_input or {}

    for key, source in input_mapping.items():
        if not isinstance(source, str):
            resolved[key] = source
            continue

        if source == EXTERNAL_PREFIX:
            resolved[key] = dict(external_input)
        elif source.startswith(EXTERNAL_PREFIX + "."):
            path = source[len(EXTERNAL_PREFIX) + 1:]
            value = get_nested_value(external_input, path)
            if value is _MISSING:
                resolved[key] = _unresolved(key, source, "external input has no such field", strict)
            else:
                resolved[key] = value
        elif OUTPUT_MARKER in source:
            head = source.split(".")[0]
            if head in prior_outputs:
                resolved[key] = prior_outputs[head]
            elif source in prior_outputs:
                resolved[key] = prior_outputs[source]
            else:
                resolved[key] = _unresolved(key, source, "output not found", strict)
        elif source in prior_outputs:
            resolved[key] = prior_outputs[source]
        else:
            resolved[key] = source

    return resolved


__all__ = ["resolve_inputs", "get_nested_value"]
