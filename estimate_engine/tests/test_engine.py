"""
Engine Facade Test Module

End-to-end runs over small snapshots: classification output, data-quality
counts, segmentation of active accounts and the deduplicated risk report.
"""

from datetime import date
from decimal import Decimal

from estimate_engine.models.enums import ExclusionReason, Outcome, Segment
from estimate_engine.services.engine import (
    assess_renewal_risk,
    build_data_quality_report,
    classify_estimates,
    group_by_account,
    segment_accounts,
)
from estimate_engine.services.deduplication import dedupe


class TestClassifyEstimates:
    """Per-estimate outcome and year attributions."""

    def test_two_year_contract_end_to_end(self, make_estimate):
        estimate = make_estimate(
            external_id="EST3351938",
            pipeline_status_text="Sold",
            status_text="Contract Signed",
            price_inc_tax="120000",
            price_ex_tax="114285.71",
            contract_start="2024-07-01",
            contract_end="2026-06-30",
        )

        [classification] = classify_estimates([estimate])

        assert classification.external_id == "EST3351938"
        assert classification.outcome == Outcome.WON
        assert classification.exclusion_reason is None
        assert {a.applies_to_year: a.allocated_amount for a in classification.year_attributions} == {
            2024: Decimal("60000"),
            2025: Decimal("60000"),
        }

    def test_excluded_and_undated(self, make_estimate):
        bad = make_estimate(contract_start=date(2025, 1, 1), contract_end=date(2024, 1, 1))
        undated = make_estimate(estimate_date=None, status_text="Estimate Lost")

        first, second = classify_estimates([bad, undated])

        assert first.exclusion_reason == ExclusionReason.INVALID_CONTRACT_DURATION
        assert first.year_attributions == []
        assert second.outcome == Outcome.LOST
        assert second.undated

    def test_unpriced_has_no_attributions(self, make_estimate):
        [classification] = classify_estimates([make_estimate(price_inc_tax=None)])

        assert classification.outcome == Outcome.WON
        assert classification.exclusion_reason == ExclusionReason.NO_PRICE
        assert classification.year_attributions == []
        assert not classification.undated


class TestDataQualityReport:
    """Silent exclusions are counted."""

    def test_counts(self, make_estimate):
        raw = [
            make_estimate(external_id="E1"),
            make_estimate(external_id="E1"),
            make_estimate(external_id="E2", contract_start="bogus", contract_end="2025-05-01"),
            make_estimate(external_id="E3", contract_start="2025-05-01", contract_end="2025-01-01"),
            make_estimate(external_id="E4", estimate_date=None, price_inc_tax=None),
            make_estimate(external_id="E5", estimate_date=None),
        ]

        report = build_data_quality_report(raw, dedupe(raw))

        assert report.total_estimates == 6
        assert report.duplicates_removed == 1
        assert report.excluded_by_reason == {
            "unresolvable_start_year": 1,
            "invalid_contract_duration": 1,
            "no_price": 1,
        }
        assert report.excluded_count == 3
        assert report.undated_count == 1
        assert report.unpriced_count == 1
        assert report.unparseable_date_fields == {"contract_start": 1}


class TestSegmentAccounts:
    """Snapshot segmentation rebuilds maps and skips archived accounts."""

    def test_segments_active_accounts(self, make_account, make_estimate):
        accounts = [
            make_account(id="big", annual_revenue="80000"),
            make_account(id="small", annual_revenue="20000"),
            make_account(id="old", annual_revenue="500000", archived=True),
        ]
        estimates = [
            make_estimate(account_id="small", estimate_type="standard",
                          estimate_date=date(2024, 8, 1)),
            make_estimate(account_id="big", estimate_type="service",
                          estimate_date=date(2024, 8, 1)),
        ]

        run, quality = segment_accounts(accounts, estimates, 2024)

        segments = {s.account_id: s.segment for s in run.segments}
        assert segments == {"big": Segment.A, "small": Segment.D}
        assert {a.id: a.segment_by_year for a in run.accounts} == {
            "big": {2023: Segment.A, 2024: Segment.A},
            "small": {2023: Segment.A, 2024: Segment.D},
        }
        assert run.total_revenue == Decimal("100000")
        assert quality.total_estimates == 2

    def test_group_by_account(self, make_estimate):
        estimates = [
            make_estimate(account_id="a"),
            make_estimate(account_id=None),
            make_estimate(account_id="a"),
        ]
        grouped = group_by_account(estimates)
        assert list(grouped) == ["a"]
        assert len(grouped["a"]) == 2


class TestAssessRenewalRisk:
    """Duplicates in the raw snapshot do not produce duplicate warnings."""

    def test_dedupes_before_detection(self, make_account, make_estimate):
        today = date(2025, 1, 1)
        repeated = dict(external_id="E1", contract_end=date(2025, 3, 1),
                        division="Maintenance", address="1 A St")
        estimates = [make_estimate(**repeated), make_estimate(**repeated)]

        report = assess_renewal_risk([make_account()], estimates, today=today)

        assert len(report.accounts) == 1
        assert report.duplicate_warnings == []
        assert report.accounts[0].days_until_renewal == 59
