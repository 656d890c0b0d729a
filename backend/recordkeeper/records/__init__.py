"""Record consistency engine.

This package decides which of an athlete's results hold the Personal Best
(PB) and Season Best (SB) designations:
- Eligibility rules (status, wind legality, age threshold)
- Comparator (lower-is-better / higher-is-better)
- Partition keys (implement weight, hurdle height)
- RecordEngine (insertion-time checks and partition rebuilds)

Usage:
    from recordkeeper.records import RecordEngine, EligibilityParams

    engine = RecordEngine.for_session(session)
    flags = await engine.evaluate_new_result(1, 2, 12.40, "2025-06-01", EligibilityParams(wind=1.2))
"""

from recordkeeper.records.types import (
    ComparisonDirection,
    EligibilityParams,
    PartitionDimension,
    PartitionKey,
    RecalculationSummary,
    RecordContext,
    RecordFlags,
    ResultStatus,
    parse_result_year,
)
from recordkeeper.records.eligibility import is_wind_assisted, is_record_eligible
from recordkeeper.records.comparator import is_better
from recordkeeper.records.partition import derive_partition_key
from recordkeeper.records.engine import RecordEngine

__all__ = [
    # Types
    "ComparisonDirection",
    "EligibilityParams",
    "PartitionDimension",
    "PartitionKey",
    "RecalculationSummary",
    "RecordContext",
    "RecordFlags",
    "ResultStatus",
    "parse_result_year",
    # Rules
    "is_wind_assisted",
    "is_record_eligible",
    "is_better",
    "derive_partition_key",
    # Engine
    "RecordEngine",
]
