# ============================================================================
# EXECUTION MODEL
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core model - Execution instance and per-node action results
# PURPOSE: Track one run of a recipe
# CREATED: 07 OCT 2026
# EXPORTS: Execution, ExecutionContext, ActionResult, RecordedActionResult, ActionError
# DEPENDENCIES: pydantic
# ============================================================================
"""
Execution Model

An Execution represents one run of a recipe (one "instance").

- Created RUNNING when the orchestrator starts the run
- Each dispatched node appends exactly one ActionResult, in dispatch order
- The terminal state is set exactly once (completed, failed or cancelled)

Executions are append-only history: retrying a run creates a new Execution
linked to the old one through `retry_of`.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import ActionStatus, ExecutionStatus, NodeType


def _utcnow() -> datetime:
    return datetime.utcnow()


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4()}"


class ActionError(BaseModel):
    """Error details recorded on a failed or skipped action."""
    message: str = Field(..., max_length=2000)
    code: str = Field(default="UNKNOWN_ERROR", max_length=64)
    kind: Optional[str] = Field(default=None, description="Exception class name")

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ActionError":
        return cls(
            message=str(exc)[:2000] or type(exc).__name__,
            code=getattr(exc, "code", "UNKNOWN_ERROR"),
            kind=type(exc).__name__,
        )


class ActionResult(BaseModel):
    """
    Result envelope for one node dispatch.

    Produced by the ActionDispatcher. Execution.append_result stores a frozen
    RecordedActionResult copy, so later changes to this object never reach
    the run history.
    """
    node_id: str = Field(..., max_length=128)
    node_type: Optional[NodeType] = None
    status: ActionStatus = Field(default=ActionStatus.PROCESSING)

    input: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[Any] = None
    error: Optional[ActionError] = None

    # Timing
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    attempts: int = Field(default=1, ge=1)

    # Provider metadata (generation nodes only)
    provider: Optional[str] = None
    model_id: Optional[str] = None
    capability_source: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    records_emitted: int = Field(default=0, ge=0)

    model_config = {"validate_assignment": False}

    def _finish(self, status: ActionStatus) -> None:
        self.status = status
        self.completed_at = _utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)

    def mark_completed(self, output: Any) -> None:
        self.output = output
        self._finish(ActionStatus.COMPLETED)

    def mark_failed(self, exc: BaseException) -> None:
        self.error = ActionError.from_exception(exc)
        self._finish(ActionStatus.FAILED)

    def mark_skipped(self, default_output: Any, exc: Optional[BaseException] = None) -> None:
        """Error absorbed by the skip policy; downstream sees the default output."""
        if exc is not None:
            self.error = ActionError.from_exception(exc)
        self.output = default_output
        self._finish(ActionStatus.SKIPPED)


class RecordedActionResult(ActionResult):
    """An ActionResult as stored on an Execution; fields cannot be reassigned."""

    model_config = {"frozen": True}


class ExecutionContext(BaseModel):
    """Bookkeeping for a run: who started it, when, and why it failed."""
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    triggered_by: str = Field(default="system", max_length=128)
    error: Optional[str] = Field(default=None, max_length=2000)
    failed_node_id: Optional[str] = Field(default=None, max_length=128)


class Execution(BaseModel):
    """
    One run of a recipe.

    Lifecycle:
        1. Created with status=RUNNING by the orchestrator
        2. One ActionResult appended per dispatched node
        3. COMPLETED when every node finished, FAILED on a fatal node error,
           CANCELLED when cancelled externally
    """
    execution_id: str = Field(default_factory=new_execution_id, max_length=64)
    recipe_id: str = Field(..., max_length=128)
    recipe_version: int = Field(default=1, ge=1)
    project_id: Optional[str] = Field(default=None, max_length=128)
    stage: Optional[str] = Field(default=None, max_length=128)

    input: Dict[str, Any] = Field(default_factory=dict)
    status: ExecutionStatus = Field(default=ExecutionStatus.RUNNING)
    action_results: List[RecordedActionResult] = Field(default_factory=list)
    context: ExecutionContext = Field(default_factory=ExecutionContext)

    final_output: Optional[Any] = None
    final_output_key: Optional[str] = None
    retry_of: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Execution this run retries (append-only history)",
    )

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if execution is in a terminal state."""
        return self.status.is_terminal()

    @computed_field
    @property
    def duration_seconds(self) -> Optional[float]:
        end_time = self.context.completed_at or _utcnow()
        return (end_time - self.context.started_at).total_seconds()

    def can_transition_to(self, new_status: ExecutionStatus) -> bool:
        """
        Validate if a status transition is allowed.

        Valid transitions:
            RUNNING -> COMPLETED, FAILED, CANCELLED
            COMPLETED, FAILED, CANCELLED -> (none, terminal)
        """
        if self.status == ExecutionStatus.RUNNING:
            return new_status != ExecutionStatus.RUNNING
        return False

    def append_result(self, result: ActionResult) -> None:
        """Append a frozen copy of a finished action result. Results are never reordered."""
        if self.status.is_terminal():
            raise ValueError(
                f"Cannot append result for {result.node_id}: execution is {self.status.value}"
            )
        if not result.status.is_terminal():
            raise ValueError(f"Result for {result.node_id} is still {result.status.value}")
        self.action_results.append(RecordedActionResult.model_validate(result.model_dump()))

    def get_result(self, node_id: str) -> Optional[RecordedActionResult]:
        for result in self.action_results:
            if result.node_id == node_id:
                return result
        return None

    def mark_completed(self, final_output: Any = None, output_key: Optional[str] = None) -> None:
        """Mark execution as successfully completed."""
        if not self.can_transition_to(ExecutionStatus.COMPLETED):
            raise ValueError(f"Cannot transition from {self.status} to COMPLETED")
        self.status = ExecutionStatus.COMPLETED
        self.final_output = final_output
        self.final_output_key = output_key
        self.context.completed_at = _utcnow()

    def mark_failed(self, error_message: str, failed_node_id: Optional[str] = None) -> None:
        """Mark execution as failed."""
        if not self.can_transition_to(ExecutionStatus.FAILED):
            raise ValueError(f"Cannot transition from {self.status} to FAILED")
        self.status = ExecutionStatus.FAILED
        self.context.error = error_message[:2000]
        self.context.failed_node_id = failed_node_id
        self.context.completed_at = _utcnow()

    def mark_cancelled(self, cancelled_at: Optional[datetime] = None) -> None:
        """Mark execution as cancelled."""
        if not self.can_transition_to(ExecutionStatus.CANCELLED):
            raise ValueError(f"Cannot transition from {self.status} to CANCELLED")
        self.status = ExecutionStatus.CANCELLED
        self.context.cancelled_at = cancelled_at or _utcnow()
        self.context.completed_at = self.context.cancelled_at

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the store (plain dicts, no computed fields)."""
        return self.model_dump(exclude={"is_terminal", "duration_seconds"})

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Execution":
        data = {k: v for k, v in document.items() if k not in ("is_terminal", "duration_seconds")}
        return cls.model_validate(data)


__all__ = [
    "ActionError",
    "ActionResult",
    "RecordedActionResult",
    "ExecutionContext",
    "Execution",
    "new_execution_id",
]
