"""Core types shared by the record engine.

This module defines the value objects threaded through eligibility,
comparison and partitioning:
- ComparisonDirection: which way a discipline's values improve
- PartitionKey: the equipment/height class a result competes in
- EligibilityParams: the per-result inputs that decide record eligibility
- RecordContext: resolved catalog and registry data for one athlete/discipline
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class ComparisonDirection(enum.Enum):
    """Direction in which a discipline's values improve."""
    LOWER_IS_BETTER = "lower_is_better"    # Timed events
    HIGHER_IS_BETTER = "higher_is_better"  # Measured events

    @classmethod
    def from_flag(cls, lower_is_better: bool) -> "ComparisonDirection":
        return cls.LOWER_IS_BETTER if lower_is_better else cls.HIGHER_IS_BETTER

    def best_first(self, column):
        """Return an ORDER BY clause that puts the best value first."""
        if self is ComparisonDirection.LOWER_IS_BETTER:
            return column.asc()
        return column.desc()


class ResultStatus(enum.Enum):
    """Outcome status of a result. Only VALID results can hold records."""
    VALID = "valid"
    NO_MARK = "nm"
    DID_NOT_START = "dns"
    DID_NOT_FINISH = "dnf"
    DISQUALIFIED = "dq"

    @staticmethod
    def is_valid(status: Optional[str]) -> bool:
        # Rows written before status existed carry NULL and count as valid
        return status is None or status == ResultStatus.VALID.value


class PartitionDimension(enum.Enum):
    """Which apparatus attribute, if any, splits a discipline into partitions."""
    NONE = "standard"
    EQUIPMENT_WEIGHT = "equipment_weight"
    HURDLE_HEIGHT = "hurdle_height"


@dataclass(frozen=True)
class PartitionKey:
    """Identifier of the set of results that compete for the same PB/SB.

    Combined with an athlete id, two results can only threaten each other's
    records when their keys are equal. ``dimension`` is the apparatus
    attribute the discipline's category is split on; ``qualifier`` is the
    value of that attribute, None for results recorded without it.
    """
    discipline_id: int
    dimension: PartitionDimension = PartitionDimension.NONE
    qualifier: Optional[float] = None

    @property
    def equipment_weight(self) -> Optional[float]:
        if self.dimension is PartitionDimension.EQUIPMENT_WEIGHT:
            return self.qualifier
        return None

    @property
    def hurdle_height(self) -> Optional[int]:
        if self.dimension is PartitionDimension.HURDLE_HEIGHT and self.qualifier is not None:
            return int(self.qualifier)
        return None

    def describe(self) -> str:
        if self.dimension is PartitionDimension.NONE:
            return f"discipline={self.discipline_id}"
        if self.qualifier is None:
            return f"discipline={self.discipline_id} {self.dimension.value}=unspecified"
        return f"discipline={self.discipline_id} {self.dimension.value}={self.qualifier:g}"


@dataclass
class EligibilityParams:
    """Per-result inputs that decide eligibility and partition.

    Attributes:
        wind: Wind reading in m/s (None when not measured)
        equipment_weight: Implement weight in kg (throws)
        hurdle_height: Hurdle height in cm (hurdles)
        status: Result status, None counts as valid
    """
    wind: Optional[float] = None
    equipment_weight: Optional[float] = None
    hurdle_height: Optional[int] = None
    status: Optional[str] = ResultStatus.VALID.value


@dataclass(frozen=True)
class RecordContext:
    """Catalog and registry data resolved before any record decision."""
    athlete_id: int
    discipline_id: int
    discipline_name: str
    category: str
    direction: ComparisonDirection
    wind_sensitive: bool
    birth_year: int


class RecordFlags(NamedTuple):
    """Flags computed for a result: (is_personal_best, is_season_best)."""
    is_personal_best: bool
    is_season_best: bool


@dataclass
class RecalculationSummary:
    """Outcome of a partition rebuild."""
    athlete_id: int
    partition: PartitionKey
    cleared: int = 0
    personal_best_id: Optional[int] = None
    season_best_ids: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "athlete_id": self.athlete_id,
            "discipline_id": self.partition.discipline_id,
            "partition": self.partition.describe(),
            "cleared": self.cleared,
            "personal_best_id": self.personal_best_id,
            "season_best_ids": {str(year): rid for year, rid in sorted(self.season_best_ids.items())},
        }


def current_year() -> int:
    return datetime.now(timezone.utc).year


def parse_result_year(date: Optional[str], fallback_year: Optional[int] = None) -> int:
    """Extract the season year from an ISO date string.

    The year is the first four characters of the date, the same slice the
    store filters seasons on. A date that does not start with four digits
    falls back to ``fallback_year`` (default: the current UTC year) and the
    fallback is logged, since it decides which season bucket the result
    lands in.

    Args:
        date: ISO calendar date, e.g. "2025-06-14"
        fallback_year: Year to use when the date is malformed

    Returns:
        Season year as an int
    """
    head = (date or "")[:4]
    if len(head) == 4 and head.isdigit():
        return int(head)

    year = fallback_year if fallback_year is not None else current_year()
    logger.warning(f"Could not parse year from result date {date!r}, falling back to {year}")
    return year
