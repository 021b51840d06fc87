# ============================================================================
# STREAMING RECORD DECODER TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Incremental record extraction
# PURPOSE: Verify records are emitted as soon as they close, never twice
# CREATED: 12 OCT 2026
# ============================================================================
"""
Streaming Record Decoder Tests

Covers:
1. Record emitted as soon as its closing brace arrives
2. Chunk boundaries anywhere (inside strings, escapes, nested objects)
3. Preambles and code fences around the array
4. Invalid candidates are not emitted and do not block later records
5. Progress estimation (monotonic, bounded, None when count unknown)
6. Single-shot decoding shares the same rules

Run with:
    pytest tests/test_streaming_decoder.py -v
"""

import json

import pytest

from streaming.decoder import ArrayRecordDecoder, decode_records, required_fields
from streaming.progress import ProgressEstimator


PERSONAS = [
    {"name": "Ada", "age": 36, "bio": "Writes {curly} notes"},
    {"name": "Brendan \"Bren\" O'Neil", "age": 41, "tags": ["a]", "{b"]},
    {"name": "Chiara", "age": 29, "meta": {"nested": {"deep": True}}},
]


def _stream(text, size):
    return [text[i:i + size] for i in range(0, len(text), size)]


# ============================================================================
# INCREMENTAL EMISSION
# ============================================================================

class TestIncrementalEmission:

    def test_record_emitted_when_it_closes(self):
        decoder = ArrayRecordDecoder()
        assert decoder.feed('[{"name": "Ada"') == []
        emitted = decoder.feed('}, {"name": ')
        assert [e.record for e in emitted] == [{"name": "Ada"}]
        assert emitted[0].sequence == 1

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    def test_any_chunking_gives_same_records(self, size):
        text = "Here you go:\n```json\n" + json.dumps(PERSONAS, indent=2) + "\n```\nEnjoy!"
        decoder = ArrayRecordDecoder()
        emitted = []
        for chunk in _stream(text, size):
            emitted.extend(decoder.feed(chunk))

        assert decoder.finish() == PERSONAS
        assert [e.record for e in emitted] == PERSONAS
        assert [e.sequence for e in emitted] == [1, 2, 3]

    def test_callback_called_once_per_record(self):
        seen = []
        decoder = ArrayRecordDecoder(on_record=seen.append)
        for chunk in _stream(json.dumps(PERSONAS), 5):
            decoder.feed(chunk)
        decoder.finish()
        assert [e.record["age"] for e in seen] == [36, 41, 29]

    def test_callback_failure_does_not_stop_decoding(self):
        def explode(emission):
            raise RuntimeError("listener down")

        decoder = ArrayRecordDecoder(on_record=explode)
        decoder.feed(json.dumps(PERSONAS))
        assert len(decoder.finish()) == 3

    def test_buffer_consumed_after_emission(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[{"a": 1}, {"b": 2}')
        assert decoder.buffered_chars == 0

    def test_text_after_array_ignored(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[{"a": 1}] and then {"b": 2}')
        assert decoder.finish() == [{"a": 1}]

    @pytest.mark.parametrize("size", [1, 4, 200])
    def test_bracketed_preamble_skipped(self, size):
        text = 'Sure [as requested], here you go:\n[{"name": "Ada"}, {"name": "Bo"}]'
        decoder = ArrayRecordDecoder()
        emitted = []
        for chunk in _stream(text, size):
            emitted.extend(decoder.feed(chunk))

        assert decoder.finish() == [{"name": "Ada"}, {"name": "Bo"}]
        assert [e.sequence for e in emitted] == [1, 2]

    def test_nested_list_before_first_record(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[[1, 2], {"a": 1}, {"b": [3]}] trailing {"c": 3}')
        assert decoder.finish() == [{"a": 1}, {"b": [3]}]

    def test_incomplete_tail_dropped(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[{"a": 1}, {"b": ')
        assert decoder.finish() == [{"a": 1}]

    def test_feed_after_finish(self):
        decoder = ArrayRecordDecoder()
        decoder.finish()
        with pytest.raises(RuntimeError):
            decoder.feed("[")


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:

    def test_invalid_candidate_not_emitted_and_not_blocking(self):
        decoder = ArrayRecordDecoder(validator=required_fields("name", "age"))
        emitted = decoder.feed('[{"name": "Ada"}, {"name": "Bo", "age": 3}]')

        assert [e.record["name"] for e in emitted] == ["Bo"]
        assert emitted[0].sequence == 1
        assert decoder.rejected_count == 1
        assert decoder.buffered_chars < 5

    def test_empty_values_rejected(self):
        validate = required_fields("name", "tags")
        assert validate({"name": "Ada", "tags": ["x"]})
        assert not validate({"name": "", "tags": ["x"]})
        assert not validate({"name": "Ada", "tags": []})
        assert not validate({"name": "Ada"})

    def test_non_object_elements_ignored(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[1, "two", {"three": 3}, [4]]')
        assert decoder.finish() == [{"three": 3}]

    def test_unparseable_candidate_rejected(self):
        decoder = ArrayRecordDecoder()
        decoder.feed('[{"a": 1,}, {"b": 2}]')
        assert decoder.finish() == [{"b": 2}]
        assert decoder.rejected_count == 1


# ============================================================================
# PROGRESS
# ============================================================================

class TestProgress:

    def test_progress_spans_range(self):
        decoder = ArrayRecordDecoder(expected_count=4, progress_range=(10, 90))
        emitted = decoder.feed(json.dumps([{"i": i} for i in range(4)]))
        assert [e.progress for e in emitted] == [30, 50, 70, 90]

    def test_progress_clamped_when_model_overdelivers(self):
        decoder = ArrayRecordDecoder(expected_count=1)
        emitted = decoder.feed(json.dumps([{"i": 1}, {"i": 2}]))
        assert [e.progress for e in emitted] == [90, 90]

    def test_progress_unknown_without_count(self):
        decoder = ArrayRecordDecoder()
        emitted = decoder.feed('[{"i": 1}]')
        assert emitted[0].progress is None

    def test_estimator_monotonic(self):
        estimator = ProgressEstimator(10, (0, 100))
        assert estimator.update(5) == 50
        assert estimator.update(3) == 50
        assert estimator.last == 50


# ============================================================================
# SINGLE-SHOT
# ============================================================================

class TestDecodeRecords:

    def test_same_rules_as_streaming(self):
        text = "```json\n" + json.dumps(PERSONAS) + "\n```"
        assert decode_records(text, validator=required_fields("name")) == PERSONAS

    def test_bracketed_preamble(self):
        text = 'Sure [as requested], here you go:\n[{"name": "Ada"}, {"name": "Bo"}]'
        assert decode_records(text, validator=required_fields("name")) == [{"name": "Ada"}, {"name": "Bo"}]

    def test_lone_object(self):
        assert decode_records('Sure! {"name": "Ada", "age": 3}') == [{"name": "Ada", "age": 3}]

    def test_lone_object_must_validate(self):
        assert decode_records('{"name": "Ada"}', validator=required_fields("age")) == []

    def test_garbage(self):
        assert decode_records("I cannot help with that.") == []
