# ============================================================================
# PROMPT TEMPLATE RENDERING
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Prompt rendering with Jinja2
# PURPOSE: Render {{ }} expressions in prompts and node parameters
# CREATED: 07 OCT 2026
# ============================================================================
"""
Prompt Template Rendering

Renders the prompt of a generation node from its config and resolved inputs.

Node config keys:
- prompt_template: Jinja2 template rendered against the node's inputs
- system_prompt:   optional template prepended to the user prompt

Variables available to a template:
- every resolved input by name ({{ topic }})
- inputs: the full resolved input dict ({{ inputs.persona.name }})
- item / index: the current element inside a for_each loop

Unresolved variables are logged and render as empty strings; a prompt is
never rejected for a missing variable. Syntax errors are input errors.

Examples:
    config:
      system_prompt: "You are a casting director."
      prompt_template: "Describe {{ count }} personas for {{ inputs.brief.title }}"
"""

import logging
import threading
from typing import Any, Dict, Optional

from jinja2 import (
    BaseLoader,
    Environment,
    Template,
    TemplateSyntaxError,
    UndefinedError,
    ChainableUndefined,
    make_logging_undefined,
)

from core.errors import InputResolutionError
from core.models import NodeDefinition

logger = logging.getLogger(__name__)


class PromptRenderer:
    """
    Jinja2-based renderer for prompts and string parameters.

    Compiled templates are cached per renderer instance; the cache is
    explicit and can be cleared.
    """

    def __init__(self):
        """Initialize the renderer with a lenient Jinja2 environment."""
        self._env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=make_logging_undefined(logger=logger, base=ChainableUndefined),
        )
        self._cache: Dict[str, Template] = {}
        self._lock = threading.Lock()

    def _compile(self, source: str) -> Template:
        with self._lock:
            template = self._cache.get(source)
        if template is not None:
            return template
        try:
            template = self._env.from_string(source)
        except TemplateSyntaxError as e:
            raise InputResolutionError(f"Invalid template '{source[:80]}': {e}") from e
        with self._lock:
            self._cache[source] = template
        return template

    def render(self, source: str, variables: Dict[str, Any]) -> str:
        """Render a template string against variables."""
        if "{{" not in source and "{%" not in source:
            return source
        try:
            return self._compile(source).render(variables)
        except UndefinedError as e:
            raise InputResolutionError(f"Failed to render '{source[:80]}': {e}") from e

    def render_value(self, value: Any, variables: Dict[str, Any]) -> Any:
        """Recursively render template expressions in a value."""
        if isinstance(value, str):
            return self.render(value, variables)
        elif isinstance(value, dict):
            return {k: self.render_value(v, variables) for k, v in value.items()}
        elif isinstance(value, list):
            return [self.render_value(item, variables) for item in value]
        else:
            return value

    def build_prompt(
        self,
        node: NodeDefinition,
        inputs: Dict[str, Any],
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Build the final prompt for a generation node.

        Args:
            node: Node whose config carries prompt_template / system_prompt
            inputs: Resolved node inputs
            extra: Additional variables (item/index inside for_each)

        Returns:
            "system\\n\\nuser" when a system prompt is set, else the user prompt

        Raises:
            InputResolutionError: No template and no 'prompt' input, or bad syntax
        """
        variables = {**inputs, "inputs": inputs, **(extra or {})}
        template = node.config.get("prompt_template")

        if template:
            prompt = self.render(template, variables)
        elif inputs.get("prompt"):
            prompt = str(inputs["prompt"])
        else:
            raise InputResolutionError(
                f"Node {node.id} has no prompt_template and no 'prompt' input",
                node_id=node.id,
            )

        system_prompt = node.config.get("system_prompt")
        if system_prompt:
            return f"{self.render(system_prompt, variables)}\n\n{prompt}"
        return prompt

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


__all__ = ["PromptRenderer"]
