"""
Year Attribution Resolver

Ties an estimate to a single calendar year using its date fields in priority
order:

    contract_end -> contract_start -> estimate_date -> created_date

The first date that is present and falls inside the accepted year range
(2000..2100 by default) wins. When none qualifies the estimate is undated and
is treated as "assumed current": it matches whichever year is being computed.

Multi-year contracts (both contract dates present) are spread across years by
the revenue allocator instead; see revenue_allocation.py.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

from estimate_engine.models.enums import DateField, UnattributedReason
from estimate_engine.models.schemas import EstimateRecord


MIN_VALID_YEAR = 2000
MAX_VALID_YEAR = 2100

DATE_PRIORITY: Tuple[DateField, ...] = (
    DateField.CONTRACT_END,
    DateField.CONTRACT_START,
    DateField.ESTIMATE_DATE,
    DateField.CREATED_DATE,
)


@dataclass(frozen=True)
class Attributed:
    """Estimate tied to a specific year by one of its date fields."""
    year: int
    source_field: DateField


@dataclass(frozen=True)
class Unattributed:
    """Estimate with no usable date."""
    reason: UnattributedReason = UnattributedReason.UNDATED


YearResolution = Union[Attributed, Unattributed]


def is_valid_year(
    value: Optional[date],
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> bool:
    return value is not None and min_year <= value.year <= max_year


def resolve_year(
    estimate: EstimateRecord,
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> YearResolution:
    """
    Resolve the calendar year an estimate belongs to.

    Args:
        estimate: The estimate record
        min_year: Earliest accepted year (inclusive)
        max_year: Latest accepted year (inclusive)

    Returns:
        Attributed(year, source_field) for the first valid date in priority
        order, or Unattributed(UNDATED) if no date field qualifies.
    """
    for field in DATE_PRIORITY:
        value = getattr(estimate, field.value)
        if is_valid_year(value, min_year, max_year):
            return Attributed(year=value.year, source_field=field)

    return Unattributed()


def applies_to_year(resolution: YearResolution, year: int) -> bool:
    """
    Check whether a resolution counts toward `year`.

    Undated estimates always match the year under computation.
    """
    if isinstance(resolution, Unattributed):
        return True
    return resolution.year == year
