"""
Year Attribution Test Module

Covers the date priority chain, the accepted year range, undated estimates,
and lenient date parsing on EstimateRecord.
"""

from datetime import date

from estimate_engine.models.enums import DateField, UnattributedReason
from estimate_engine.services.year_attribution import (
    Attributed,
    Unattributed,
    applies_to_year,
    resolve_year,
)


class TestPriorityChain:
    """contract_end -> contract_start -> estimate_date -> created_date."""

    def test_contract_end_wins(self, make_estimate):
        estimate = make_estimate(
            contract_end=date(2026, 3, 1),
            contract_start=date(2025, 3, 1),
            estimate_date=date(2024, 12, 1),
            created_date=date(2024, 11, 1),
        )
        assert resolve_year(estimate) == Attributed(2026, DateField.CONTRACT_END)

    def test_contract_start_when_no_end(self, make_estimate):
        estimate = make_estimate(contract_start=date(2025, 3, 1), estimate_date=date(2024, 1, 1))
        assert resolve_year(estimate) == Attributed(2025, DateField.CONTRACT_START)

    def test_estimate_date(self, make_estimate):
        estimate = make_estimate(estimate_date=date(2024, 1, 1), created_date=date(2023, 1, 1))
        assert resolve_year(estimate) == Attributed(2024, DateField.ESTIMATE_DATE)

    def test_created_date_last(self, make_estimate):
        estimate = make_estimate(estimate_date=None, created_date=date(2023, 6, 30))
        assert resolve_year(estimate) == Attributed(2023, DateField.CREATED_DATE)

    def test_out_of_range_year_is_skipped(self, make_estimate):
        estimate = make_estimate(contract_end=date(1999, 12, 31), estimate_date=date(2024, 2, 2))
        assert resolve_year(estimate) == Attributed(2024, DateField.ESTIMATE_DATE)

    def test_custom_year_range(self, make_estimate):
        estimate = make_estimate(estimate_date=date(2024, 2, 2))
        assert isinstance(resolve_year(estimate, min_year=2025), Unattributed)


class TestUndated:
    """No usable date means 'assumed current'."""

    def test_no_dates(self, make_estimate):
        estimate = make_estimate(estimate_date=None)
        resolution = resolve_year(estimate)
        assert resolution == Unattributed()
        assert resolution.reason == UnattributedReason.UNDATED

    def test_undated_applies_to_any_year(self):
        assert applies_to_year(Unattributed(), 2019)
        assert applies_to_year(Unattributed(), 2030)

    def test_attributed_applies_to_own_year_only(self):
        resolution = Attributed(2024, DateField.ESTIMATE_DATE)
        assert applies_to_year(resolution, 2024)
        assert not applies_to_year(resolution, 2025)


class TestDateCoercion:
    """EstimateRecord parses dates leniently and records failures."""

    def test_string_dates_are_parsed(self, make_estimate):
        estimate = make_estimate(estimate_date="2024-07-15", contract_end="06/30/2026")
        assert estimate.estimate_date == date(2024, 7, 15)
        assert estimate.contract_end == date(2026, 6, 30)
        assert estimate.unparseable_dates == ()

    def test_unparseable_date_becomes_none(self, make_estimate):
        estimate = make_estimate(estimate_date="not a date", created_date="2023-01-05")
        assert estimate.estimate_date is None
        assert estimate.unparseable_dates == ("estimate_date",)
        assert resolve_year(estimate) == Attributed(2023, DateField.CREATED_DATE)

    def test_empty_string_is_missing_not_unparseable(self, make_estimate):
        estimate = make_estimate(estimate_date="")
        assert estimate.estimate_date is None
        assert estimate.unparseable_dates == ()
