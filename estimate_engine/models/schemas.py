"""
Pydantic models for the estimate engine.

This module defines the immutable input records read from the record store
(EstimateRecord, AccountRecord) and every structured result the engine hands to
the reporting and notification layer: per-estimate classifications, per-account
segments, persistence tallies, at-risk lists, duplicate warnings, data-quality
counts and win/loss statistics.

Input records are frozen: the engine never mutates what the record store gave
it. The segment calculator returns updated copies via model_copy().

All models use Pydantic v2 syntax.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from estimate_engine.models.enums import (
    EstimateType,
    ExclusionReason,
    Outcome,
    Segment,
)


# =============================================================================
# Input Coercion Helpers
# =============================================================================

# Date fields on EstimateRecord that are parsed leniently
ESTIMATE_DATE_FIELDS: Tuple[str, ...] = (
    "estimate_date",
    "close_date",
    "contract_start",
    "contract_end",
    "created_date",
)


def coerce_date(value: Any) -> Optional[date]:
    """
    Coerce a raw date value into a date, or None when it cannot be parsed.

    Accepts date and datetime objects, pandas Timestamps and strings in any
    format pandas recognizes (YYYY-MM-DD, MM/DD/YYYY, ISO timestamps).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and not value.strip():
        return None

    parsed = pd.to_datetime(value, errors="coerce")
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def coerce_money(value: Any) -> Optional[Decimal]:
    """
    Coerce a raw monetary value into a Decimal, or None when unusable.

    Strings may carry currency symbols and thousands separators ("$1,200.50").
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None

    cleaned = str(value).replace("$", "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


# =============================================================================
# Input Records
# =============================================================================


class EstimateRecord(BaseModel):
    """
    A sales estimate as supplied by the record store.

    Immutable. Date fields that cannot be parsed become None and their names
    are recorded in `unparseable_dates` so data-quality reporting can count
    them without the engine ever raising.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "external_id": "EST3351938",
                "account_id": "lmn-account-3661753",
                "status_text": "Contract Signed",
                "pipeline_status_text": "Sold",
                "price_ex_tax": "114285.71",
                "price_inc_tax": "120000.00",
                "contract_start": "2024-07-01",
                "contract_end": "2026-06-30",
                "division": "Maintenance",
                "address": "123 Main St NW",
                "estimate_type": "service",
            }
        }
    )

    external_id: Optional[str] = Field(
        default=None,
        description="Stable identifier from the estimating platform"
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Owning account reference"
    )
    status_text: Optional[str] = Field(
        default=None,
        description="Free-text estimate status"
    )
    pipeline_status_text: Optional[str] = Field(
        default=None,
        description="Canonical sales-stage field from the platform"
    )
    price_ex_tax: Optional[Decimal] = Field(
        default=None,
        description="Total price excluding tax"
    )
    price_inc_tax: Optional[Decimal] = Field(
        default=None,
        description="Total price including tax (preferred)"
    )
    estimate_date: Optional[date] = None
    close_date: Optional[date] = None
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None
    created_date: Optional[date] = None
    division: Optional[str] = Field(
        default=None,
        description="Department/division, used for renewal matching"
    )
    address: Optional[str] = Field(
        default=None,
        description="Jobsite address, used for renewal matching"
    )
    estimate_type: Optional[EstimateType] = None
    exclude_from_stats: bool = False
    archived: bool = False
    unparseable_dates: Tuple[str, ...] = Field(
        default=(),
        description="Date fields whose raw value could not be parsed"
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce_raw_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        unparseable = list(data.get("unparseable_dates") or ())

        for field_name in ESTIMATE_DATE_FIELDS:
            raw = data.get(field_name)
            parsed = coerce_date(raw)
            if parsed is None and raw is not None and str(raw).strip():
                if field_name not in unparseable:
                    unparseable.append(field_name)
            data[field_name] = parsed

        for field_name in ("price_ex_tax", "price_inc_tax"):
            data[field_name] = coerce_money(data.get(field_name))

        for field_name in ("exclude_from_stats", "archived"):
            if data.get(field_name) is None:
                data[field_name] = False

        data["unparseable_dates"] = tuple(unparseable)
        return data

    @field_validator("estimate_type", mode="before")
    @classmethod
    def _coerce_estimate_type(cls, value: Any) -> Optional[EstimateType]:
        if value is None or isinstance(value, EstimateType):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        try:
            return EstimateType(text)
        except ValueError:
            return EstimateType.OTHER


class AccountRecord(BaseModel):
    """
    A customer account as supplied by the record store.

    `segment_by_year` is recomputed wholesale on every segmentation run;
    `revenue_segment` mirrors the most recent year present in that map for
    consumers that only understand a single segment letter.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "id": "lmn-account-3661753",
                "name": "Public Storage",
                "annual_revenue": "250000.00",
                "archived": False,
                "segment_by_year": {"2024": "B", "2025": "A"},
                "snoozed_until": None,
            }
        }
    )

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    annual_revenue: Decimal = Field(
        default=Decimal("0"),
        description="Externally supplied annual revenue used for revenue share"
    )
    archived: bool = False
    segment_by_year: Dict[int, Segment] = Field(default_factory=dict)
    revenue_segment: Optional[Segment] = Field(
        default=None,
        description="Most recent year's segment, kept for single-letter consumers"
    )
    snoozed_until: Optional[date] = None

    @field_validator("annual_revenue", mode="before")
    @classmethod
    def _coerce_revenue(cls, value: Any) -> Decimal:
        amount = coerce_money(value)
        return amount if amount is not None else Decimal("0")

    @field_validator("archived", mode="before")
    @classmethod
    def _coerce_archived(cls, value: Any) -> bool:
        return bool(value) if value is not None else False

    @field_validator("snoozed_until", mode="before")
    @classmethod
    def _coerce_snoozed_until(cls, value: Any) -> Optional[date]:
        return coerce_date(value)

    @field_validator("segment_by_year", mode="before")
    @classmethod
    def _coerce_segment_map(cls, value: Any) -> Dict[int, Any]:
        if not value:
            return {}
        segments: Dict[int, Any] = {}
        for year, letter in dict(value).items():
            try:
                segments[int(year)] = letter
            except (TypeError, ValueError):
                continue
        return segments


# =============================================================================
# Attribution and Classification Outputs
# =============================================================================


class YearAttribution(BaseModel):
    """Share of an estimate's value attributed to one calendar year."""
    model_config = ConfigDict(frozen=True)

    applies_to_year: int
    allocated_amount: Decimal


class AllocationResult(BaseModel):
    """
    Revenue allocation for a single estimate.

    Exactly one of three shapes:
    - attributions populated: the estimate is tied to one or more years
    - undated=True: no usable date, applies to whichever year is computed
    - exclusion_reason set: bad data, contributes to no year
    """
    model_config = ConfigDict(frozen=True)

    total_amount: Decimal = Decimal("0")
    attributions: List[YearAttribution] = Field(default_factory=list)
    undated: bool = False
    exclusion_reason: Optional[ExclusionReason] = None

    @property
    def is_excluded(self) -> bool:
        return self.exclusion_reason is not None

    def amount_for_year(self, year: int) -> Decimal:
        """Amount attributed to `year`; undated estimates match any year."""
        if self.is_excluded:
            return Decimal("0")
        if self.undated:
            return self.total_amount
        return sum(
            (a.allocated_amount for a in self.attributions if a.applies_to_year == year),
            Decimal("0"),
        )

    def applies_to(self, year: int) -> bool:
        if self.is_excluded:
            return False
        if self.undated:
            return True
        return any(a.applies_to_year == year for a in self.attributions)


class EstimateClassification(BaseModel):
    """Per-estimate output: outcome plus year attributions."""
    external_id: Optional[str]
    account_id: Optional[str] = None
    outcome: Outcome
    year_attributions: List[YearAttribution] = Field(default_factory=list)
    undated: bool = False
    exclusion_reason: Optional[ExclusionReason] = None


class DataQualityReport(BaseModel):
    """
    Observability counts for records the engine could not fully use.

    Nothing here is an error; these are the silent exclusions made visible.
    """
    total_estimates: int = 0
    duplicates_removed: int = 0
    undated_count: int = 0
    unpriced_count: int = 0
    excluded_by_reason: Dict[str, int] = Field(default_factory=dict)
    unparseable_date_fields: Dict[str, int] = Field(default_factory=dict)

    @property
    def excluded_count(self) -> int:
        return sum(self.excluded_by_reason.values())


# =============================================================================
# Segmentation Outputs
# =============================================================================


class AccountSegment(BaseModel):
    """Segment assigned to one account for one year."""
    account_id: str
    year: int
    segment: Segment


class SegmentRun(BaseModel):
    """Result of computing segments for a batch of accounts."""
    year: int
    total_revenue: Decimal
    accounts: List[AccountRecord] = Field(default_factory=list)
    segments: List[AccountSegment] = Field(default_factory=list)


class SegmentDowngrade(BaseModel):
    """An account whose segment for a year ranks below the previous year's."""
    account_id: str
    account_name: Optional[str] = None
    year: int
    previous_segment: Segment
    current_segment: Segment


class SegmentPersistResult(BaseModel):
    """Outcome of writing one account's segments back to the record store."""
    account_id: str
    ok: bool
    segment: Optional[Segment] = None
    error: Optional[str] = None


class SegmentRefreshSummary(BaseModel):
    """Success/failure tally of a segment refresh batch."""
    year: int
    accounts_processed: int = 0
    succeeded: int = 0
    failed: int = 0
    segment_counts: Dict[str, int] = Field(default_factory=dict)
    results: List[SegmentPersistResult] = Field(default_factory=list)
    downgrades: List[SegmentDowngrade] = Field(default_factory=list)
    data_quality: DataQualityReport = Field(default_factory=DataQualityReport)


# =============================================================================
# Renewal Risk Outputs
# =============================================================================


class AtRiskEstimate(BaseModel):
    """A won estimate whose contract ends inside the at-risk window."""
    account_id: Optional[str]
    estimate_external_id: Optional[str]
    days_until_renewal: int
    contract_end: date
    department: Optional[str] = None
    address: Optional[str] = None


class DuplicateRenewalWarning(BaseModel):
    """More than one at-risk estimate for the same department and address."""
    account_id: Optional[str]
    department: Optional[str] = None
    address: Optional[str] = None
    estimate_external_ids: List[Optional[str]] = Field(default_factory=list)


class RenewalRiskResult(BaseModel):
    """At-risk estimates for one account plus diagnostics."""
    at_risk: List[AtRiskEstimate] = Field(default_factory=list)
    suppressed_external_ids: List[Optional[str]] = Field(default_factory=list)
    duplicate_warnings: List[DuplicateRenewalWarning] = Field(default_factory=list)


class AtRiskAccount(BaseModel):
    """Account-level at-risk summary keyed on the soonest-expiring estimate."""
    account_id: str
    account_name: Optional[str] = None
    renewal_date: date
    days_until_renewal: int
    expiring_estimate_external_id: Optional[str] = None
    department: Optional[str] = None
    address: Optional[str] = None
    has_duplicates: bool = False
    at_risk_estimates: List[AtRiskEstimate] = Field(default_factory=list)


class AtRiskReport(BaseModel):
    """Everything the notification layer needs about renewal risk."""
    as_of: date
    threshold_days: int
    accounts: List[AtRiskAccount] = Field(default_factory=list)
    at_risk_estimates: List[AtRiskEstimate] = Field(default_factory=list)
    duplicate_warnings: List[DuplicateRenewalWarning] = Field(default_factory=list)


# =============================================================================
# Win/Loss Reporting Outputs
# =============================================================================


class WinLossStats(BaseModel):
    """Win/loss counts and values for a group of estimates."""
    total: int = 0
    won: int = 0
    lost: int = 0
    pending: int = 0
    decided_count: int = 0
    win_rate: float = Field(
        default=0.0,
        description="won / (won + lost) * 100, rounded to one decimal"
    )
    total_value: float = 0.0
    won_value: float = 0.0
    lost_value: float = 0.0
    pending_value: float = 0.0


class AccountWinLossStats(WinLossStats):
    """Win/loss statistics for a single account."""
    account_id: str
    account_name: str = "Unknown Account"


class DivisionWinLossStats(WinLossStats):
    """Win/loss statistics for a single division."""
    division: str
