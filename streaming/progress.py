# ============================================================================
# STREAMING PROGRESS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Progress estimate for streamed records
# PURPOSE: Map "records so far / records expected" onto a percent band
# CREATED: 09 OCT 2026
# ============================================================================
"""
Streaming Progress

    progress = start + round(current / expected * (end - start))

Clamped to [start, end] and never decreasing. Without an expected count
there is no estimate (None).
"""

from typing import Optional, Tuple


class ProgressEstimator:
    """Monotonic percent estimate over a fixed band."""

    def __init__(
        self,
        expected: Optional[int],
        progress_range: Tuple[int, int] = (10, 90),
    ):
        start, end = progress_range
        if end < start:
            raise ValueError(f"Invalid progress range: {progress_range}")
        self.expected = expected if expected and expected > 0 else None
        self.start = start
        self.end = end
        self._last: Optional[int] = None

    def update(self, current: int) -> Optional[int]:
        """Estimate after `current` records have been emitted."""
        if self.expected is None:
            return None
        estimate = self.start + round(current / self.expected * (self.end - self.start))
        estimate = max(self.start, min(self.end, estimate))
        if self._last is not None:
            estimate = max(self._last, estimate)
        self._last = estimate
        return estimate

    @property
    def last(self) -> Optional[int]:
        return self._last


__all__ = ["ProgressEstimator"]
