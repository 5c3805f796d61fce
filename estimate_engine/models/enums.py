"""
Enumeration definitions for the estimate engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, so computed classifications and segments
can be handed to the reporting layer without conversion.
"""

from enum import Enum


class Outcome(str, Enum):
    """
    Tri-state sales outcome of an estimate.

    - won: Pipeline status reports a sale, or the status is a won phrase
    - lost: Status is one of the explicit lost phrases
    - pending: Anything else, including missing or unrecognized status text
    """
    WON = "won"
    LOST = "lost"
    PENDING = "pending"


class EstimateType(str, Enum):
    """
    Estimate type as reported by the estimating platform.

    - standard: One-time project work
    - service: Ongoing or recurring maintenance work
    - other: Any other value the platform emits
    """
    STANDARD = "standard"
    SERVICE = "service"
    OTHER = "other"


class Segment(str, Enum):
    """
    Account revenue-importance tier for a calendar year.

    - A: Revenue share >= 15% of total revenue
    - B: Revenue share >= 5% and < 15%
    - C: Revenue share < 5%, or no revenue data
    - D: Won business that year is standard (project) work only, no service work
    """
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class ExclusionReason(str, Enum):
    """
    Why an estimate contributes no revenue to any year.

    These are data-quality outcomes, never raised as errors:
    - invalid_contract_duration: Contract end is not after contract start
    - unresolvable_start_year: Contract end present but start date unusable
    - no_price: Neither price field holds a usable non-zero amount
    """
    INVALID_CONTRACT_DURATION = "invalid_contract_duration"
    UNRESOLVABLE_START_YEAR = "unresolvable_start_year"
    NO_PRICE = "no_price"


class UnattributedReason(str, Enum):
    """
    Why an estimate could not be tied to a specific calendar year.

    - undated: No usable date field; callers assume the year being computed
    """
    UNDATED = "undated"


class DateField(str, Enum):
    """
    Date fields consulted for year attribution, in priority order.
    """
    CONTRACT_END = "contract_end"
    CONTRACT_START = "contract_start"
    ESTIMATE_DATE = "estimate_date"
    CREATED_DATE = "created_date"
