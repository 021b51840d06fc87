# ============================================================================
# STREAMING RECORD DECODER
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Incremental JSON-array record extraction
# PURPOSE: Emit validated records while a generation is still streaming
# CREATED: 09 OCT 2026
# ============================================================================
"""
Streaming Record Decoder

Turns a growing text stream shaped like a JSON array of objects into
validated records, each emitted as soon as it is structurally complete.

    decoder = ArrayRecordDecoder(
        validator=required_fields("name", "age"),
        on_record=lambda emission: print(emission.sequence, emission.record),
        expected_count=5,
    )
    for chunk in stream:
        decoder.feed(chunk)
    records = decoder.finish()

Two phases per candidate:
1. Syntactic: a top-level {...} closes (brace depth back to 0, braces
   inside JSON strings ignored) and parses as a JSON object
2. Semantic: the record validator accepts it

A candidate failing either phase is not emitted and the buffer is kept.
When a later record is emitted, everything before it is consumed, so a
rejected candidate never blocks the stream. Text before the opening `[`
(chatty preambles, ```json fences) and after the closing `]` is ignored.
A `[...]` holding no object is treated as preamble, so the array is the
first bracket that contains a record.

Each character is scanned once; feed() is O(len(chunk)).
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from streaming.progress import ProgressEstimator

logger = logging.getLogger(__name__)


Record = Dict[str, Any]
RecordValidator = Callable[[Record], bool]


@dataclass(frozen=True)
class RecordEmission:
    """One validated record, in array order."""
    sequence: int  # 1-based
    record: Record
    progress: Optional[int] = None


RecordCallback = Callable[[RecordEmission], None]


def required_fields(*fields: str) -> RecordValidator:
    """
    Validator accepting records where every field is present and non-empty.

    Example:
        required_fields("scene_number", "description")
    """
    def validate(record: Record) -> bool:
        for name in fields:
            value = record.get(name)
            if value is None or value == "" or value == [] or value == {}:
                return False
        return True

    validate.fields = fields  # type: ignore[attr-defined]
    return validate


def _accept_any(record: Record) -> bool:
    return True


class RecordDecoder(ABC):
    """Narrow interface: chunks in, validated records out."""

    @abstractmethod
    def feed(self, chunk: str) -> List[RecordEmission]:
        """Consume a chunk, return the records it completed."""

    @abstractmethod
    def finish(self) -> List[Record]:
        """End of stream; return every emitted record."""

    @property
    @abstractmethod
    def records(self) -> List[Record]:
        ...


class ArrayRecordDecoder(RecordDecoder):
    """
    Brace-depth scanner over a JSON array of objects.

    Not safe for concurrent feed() calls on one instance.
    """

    def __init__(
        self,
        validator: Optional[RecordValidator] = None,
        on_record: Optional[RecordCallback] = None,
        expected_count: Optional[int] = None,
        progress_range: Tuple[int, int] = (10, 90),
    ):
        self.validator = validator or _accept_any
        self.on_record = on_record
        self._progress = ProgressEstimator(expected_count, progress_range)

        self._buffer = ""
        self._base = 0          # absolute offset of _buffer[0]
        self._scan_pos = 0      # absolute offset of next unscanned char
        self._in_array = False
        self._brackets = 0     # open [ at brace depth 0, inside the array
        self._seen_candidate = False
        self._closed = False
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._candidate_start: Optional[int] = None

        self._records: List[Record] = []
        self._rejected = 0
        self._finished = False

    @property
    def records(self) -> List[Record]:
        return list(self._records)

    @property
    def rejected_count(self) -> int:
        """Complete candidates that failed parsing or validation."""
        return self._rejected

    @property
    def buffered_chars(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: str) -> List[RecordEmission]:
        if self._finished:
            raise RuntimeError("feed() called after finish()")
        if not chunk:
            return []

        self._buffer += chunk
        emissions: List[RecordEmission] = []
        pos = self._scan_pos
        end = self._base + len(self._buffer)

        while pos < end and not self._closed:
            ch = self._buffer[pos - self._base]
            pos += 1

            if not self._in_array:
                if ch == "[":
                    self._in_array = True
                    self._brackets = 1
                continue

            if self._in_string:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_string = False
                continue

            if ch == '"':
                self._in_string = True
            elif ch == "{":
                if self._depth == 0:
                    self._candidate_start = pos - 1
                    self._seen_candidate = True
                self._depth += 1
            elif ch == "}":
                if self._depth > 0:
                    self._depth -= 1
                    if self._depth == 0 and self._candidate_start is not None:
                        emission = self._try_emit(self._candidate_start, pos)
                        self._candidate_start = None
                        if emission is not None:
                            emissions.append(emission)
            elif ch == "[" and self._depth == 0:
                self._brackets += 1
            elif ch == "]" and self._depth == 0:
                self._brackets -= 1
                if self._brackets > 0:
                    continue
                if self._seen_candidate:
                    self._closed = True
                else:
                    # Bracketed aside before the records, e.g. "Sure [as asked]:"
                    self._in_array = False

        self._scan_pos = pos
        return emissions

    def _try_emit(self, start: int, stop: int) -> Optional[RecordEmission]:
        text = self._buffer[start - self._base:stop - self._base]
        try:
            record = json.loads(text)
        except json.JSONDecodeError as e:
            self._rejected += 1
            logger.debug(f"Candidate record did not parse ({e}); keeping buffer")
            return None

        if not isinstance(record, dict) or not self.validator(record):
            self._rejected += 1
            logger.debug("Candidate record failed validation; keeping buffer")
            return None

        self._records.append(record)
        emission = RecordEmission(
            sequence=len(self._records),
            record=record,
            progress=self._progress.update(len(self._records)),
        )

        # Consume through the end of this record
        self._buffer = self._buffer[stop - self._base:]
        self._base = stop

        if self.on_record is not None:
            try:
                self.on_record(emission)
            except Exception as e:
                logger.warning(f"Record callback failed for record {emission.sequence}: {e}")
        return emission

    def finish(self) -> List[Record]:
        self._finished = True
        if self._depth > 0 or self._in_string:
            logger.debug(
                f"Stream ended inside an incomplete record ({len(self._buffer)} chars buffered)"
            )
        logger.debug(
            f"Decoder finished: {len(self._records)} records, {self._rejected} rejected"
        )
        return self.records


def decode_records(
    text: str,
    validator: Optional[RecordValidator] = None,
    on_record: Optional[RecordCallback] = None,
    expected_count: Optional[int] = None,
    progress_range: Tuple[int, int] = (10, 90),
) -> List[Record]:
    """
    Single-shot mode over a complete response.

    Uses the same extraction and validation as streaming. A response that is
    a bare JSON object (no array) yields that object when it validates.
    """
    decoder = ArrayRecordDecoder(
        validator=validator,
        on_record=on_record,
        expected_count=expected_count,
        progress_range=progress_range,
    )
    decoder.feed(text)
    records = decoder.finish()
    if records or "[" in text:
        return records

    # No array at all: try a lone object
    start, stop = text.find("{"), text.rfind("}")
    if start == -1 or stop <= start:
        return []
    try:
        record = json.loads(text[start:stop + 1])
    except json.JSONDecodeError:
        return []
    if isinstance(record, dict) and decoder.validator(record):
        if on_record is not None:
            try:
                on_record(RecordEmission(sequence=1, record=record, progress=None))
            except Exception as e:
                logger.warning(f"Record callback failed for record 1: {e}")
        return [record]
    return []


__all__ = [
    "Record",
    "RecordValidator",
    "RecordCallback",
    "RecordEmission",
    "RecordDecoder",
    "ArrayRecordDecoder",
    "required_fields",
    "decode_records",
]
