# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Structured logging with execution context
# PURPOSE: Consistent, queryable logging across orchestrator and actions
# CREATED: 07 OCT 2026
# ============================================================================
"""
Structured Logging

Structured, optionally JSON-formatted logging for the recipe engine.

Features:
- Execution-scoped context (execution_id, recipe_id, node_id, ...)
- Context follows asyncio tasks (contextvars)
- JSON output for log aggregation, human format for development
- Named checkpoints (execution_started, node_completed, ...)

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("orchestrator.recipe")

    with log_context(execution_id="exec_123", node_id="gen_text"):
        logger.info("Dispatching node")
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    ORCHESTRATOR = "orchestrator"
    VALIDATOR = "validator"
    RESOLVER = "resolver"
    DISPATCHER = "dispatcher"
    DECODER = "decoder"
    PROVIDER = "provider"
    REPOSITORY = "repository"


@dataclass
class LogContext:
    """Contextual fields attached to every log line inside a log_context block."""
    execution_id: Optional[str] = None
    recipe_id: Optional[str] = None
    node_id: Optional[str] = None
    project_id: Optional[str] = None
    stage: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_current_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "recipe_log_context", default=LogContext()
)


def get_current_context() -> LogContext:
    """Get current logging context."""
    return _current_context.get()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Fields not given are inherited from the enclosing context.

    Example:
        with log_context(execution_id="exec_1", node_id="gen_text"):
            logger.info("Processing node")
    """
    parent = get_current_context()
    new_context = LogContext(
        execution_id=kwargs.get("execution_id", parent.execution_id),
        recipe_id=kwargs.get("recipe_id", parent.recipe_id),
        node_id=kwargs.get("node_id", parent.node_id),
        project_id=kwargs.get("project_id", parent.project_id),
        stage=kwargs.get("stage", parent.stage),
        component=kwargs.get("component", parent.component),
        operation=kwargs.get("operation", parent.operation),
        extra={**parent.extra, **kwargs.get("extra", {})},
    )
    token = _current_context.set(new_context)
    try:
        yield new_context
    finally:
        _current_context.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for log aggregators."""

    def __init__(self, include_context: bool = True, include_source: bool = True):
        super().__init__()
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        data = getattr(record, "data", None)
        if data:
            log_data["data"] = data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for development, context fields inline."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        if context.execution_id:
            context_parts.append(f"exec={context.execution_id}")
        if context.node_id:
            context_parts.append(f"node={context.node_id}")
        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        data = getattr(record, "data", None)
        data_str = f" {data}" if data else ""

        result = f"{timestamp} {level} {record.name}{context_str}: {record.getMessage()}{data_str}"
        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"
        return result


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that folds structured `data` and the current context into records."""

    def process(self, msg, kwargs):
        data = dict(kwargs.pop("data", None) or {})
        if self.extra and self.extra.get("component"):
            data.setdefault("component", self.extra["component"])
        extra = dict(kwargs.get("extra") or {})
        if data:
            extra["data"] = data
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """Get a context-aware logger."""
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component else None},
    )


def configure_logging(
    level: Optional[Union[str, int]] = None,
    json_output: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR), LOG_LEVEL env if omitted
        json_output: Use JSON format (also enabled by LOG_FORMAT=json)
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named checkpoint marker.

    Args:
        name: Checkpoint name (e.g., "execution_started", "node_completed")
        data: Optional checkpoint data
        logger: Optional specific logger to use
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    checkpoint_data: Dict[str, Any] = {"checkpoint": name}
    context = get_current_context()
    if context.execution_id:
        checkpoint_data["execution_id"] = context.execution_id
    if context.node_id:
        checkpoint_data["node_id"] = context.node_id
    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"data": checkpoint_data})


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
