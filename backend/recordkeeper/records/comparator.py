"""Best-value comparison for a discipline's comparison direction."""

from typing import Optional

from recordkeeper.records.types import ComparisonDirection


def is_better(
    candidate: float,
    current_best: Optional[float],
    direction: ComparisonDirection,
) -> bool:
    """Return True if ``candidate`` beats ``current_best``.

    Ties keep the incumbent. With no current best the candidate wins.
    """
    if current_best is None:
        return True
    if direction is ComparisonDirection.LOWER_IS_BETTER:
        return candidate < current_best
    return candidate > current_best

