"""Record eligibility rules.

A result can only become a PB or SB when its status is valid and it is not
wind-assisted. Wind legality applies to wind-sensitive disciplines only
(sprints up to 200m, short hurdles, long jump, triple jump) and only from the
age threshold upward; younger athletes' results are always wind-eligible.
"""

from typing import Optional

from recordkeeper.config import settings
from recordkeeper.records.types import EligibilityParams, RecordContext, ResultStatus


def is_wind_sensitive(discipline_name: str, wind_sensitive: Optional[bool] = None) -> bool:
    """Whether wind readings matter for the discipline.

    The catalog's stored flag wins when known; otherwise the short name is
    matched exactly against the configured allow-list.
    """
    if wind_sensitive is not None:
        return wind_sensitive
    return discipline_name in settings.wind_sensitive_discipline_names


def is_wind_assisted(
    wind: Optional[float],
    discipline_name: str,
    athlete_birth_year: int,
    result_year: int,
    wind_sensitive: Optional[bool] = None,
) -> bool:
    """Check if wind makes a result ineligible for records.

    Args:
        wind: Wind reading in m/s, None when not measured
        discipline_name: Short display name of the discipline
        athlete_birth_year: Athlete's year of birth
        result_year: Year the result was achieved
        wind_sensitive: Catalog flag, overrides the name allow-list when given

    Returns:
        True only for a wind-sensitive discipline, an athlete at or above the
        age threshold, and a wind reading strictly above the limit
    """
    if not is_wind_sensitive(discipline_name, wind_sensitive):
        return False

    if result_year - athlete_birth_year < settings.wind_rule_age_threshold:
        return False

    return wind is not None and wind > settings.wind_limit


def is_record_eligible(params: EligibilityParams, context: RecordContext, result_year: int) -> bool:
    """Whether a result with these params may acquire a PB or SB."""
    if not ResultStatus.is_valid(params.status):
        return False
    return not is_wind_assisted(
        params.wind,
        context.discipline_name,
        context.birth_year,
        result_year,
        wind_sensitive=context.wind_sensitive,
    )
