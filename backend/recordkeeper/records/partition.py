"""Partition key derivation.

A shot put with a 3 kg implement never competes with one thrown with 4 kg,
and a 76 cm hurdle race never competes with an 84 cm one: the same
discipline id covers several apparatus classes and PB/SB are tracked per
class.
"""

from typing import Optional

from recordkeeper.records.types import PartitionDimension, PartitionKey

THROWS_CATEGORY = "throws"
HURDLES_CATEGORY = "hurdles"

_CATEGORY_DIMENSIONS = {
    THROWS_CATEGORY: PartitionDimension.EQUIPMENT_WEIGHT,
    HURDLES_CATEGORY: PartitionDimension.HURDLE_HEIGHT,
}


def partition_dimension(category: str) -> PartitionDimension:
    """The apparatus attribute a discipline category is split on."""
    return _CATEGORY_DIMENSIONS.get(category, PartitionDimension.NONE)


def derive_partition_key(
    discipline_id: int,
    category: str,
    equipment_weight: Optional[float] = None,
    hurdle_height: Optional[int] = None,
) -> PartitionKey:
    """Map a discipline and its apparatus attributes to a partition.

    Throws are keyed by implement weight and hurdles by hurdle height. A
    throw or hurdle race recorded without the attribute gets a key with no
    qualifier, which only matches other rows recorded without it. Every
    other category has a single standard partition per discipline.

    Args:
        discipline_id: Discipline catalog id
        category: Discipline category from the catalog
        equipment_weight: Implement weight in kg, used for throws only
        hurdle_height: Hurdle height in cm, used for hurdles only

    Returns:
        PartitionKey for the result
    """
    dimension = partition_dimension(category)
    if dimension is PartitionDimension.EQUIPMENT_WEIGHT and equipment_weight is not None:
        return PartitionKey(discipline_id, dimension, float(equipment_weight))
    if dimension is PartitionDimension.HURDLE_HEIGHT and hurdle_height is not None:
        return PartitionKey(discipline_id, dimension, int(hurdle_height))
    return PartitionKey(discipline_id, dimension, None)
