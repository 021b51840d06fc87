# ============================================================================
# STREAMING MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Incremental record decoding
# PURPOSE: Validated records from partially delivered generations
# CREATED: 09 OCT 2026
# ============================================================================

from streaming.decoder import (
    ArrayRecordDecoder,
    RecordDecoder,
    RecordEmission,
    decode_records,
    required_fields,
)
from streaming.progress import ProgressEstimator

__all__ = [
    "ArrayRecordDecoder",
    "RecordDecoder",
    "RecordEmission",
    "decode_records",
    "required_fields",
    "ProgressEstimator",
]
