"""
Deduplication Test Module

First record per external_id wins, records without an id are kept, and the
result is deterministic for a given input order.
"""

from estimate_engine.services.deduplication import dedupe


class TestDedupe:
    """dedupe() keeps first occurrences in encounter order."""

    def test_first_occurrence_wins(self, make_estimate):
        first = make_estimate(external_id="EST1", price_inc_tax="100")
        second = make_estimate(external_id="EST1", price_inc_tax="999")
        other = make_estimate(external_id="EST2")

        result = dedupe([first, other, second])

        assert result == [first, other]
        assert result[0].price_inc_tax == first.price_inc_tax

    def test_records_without_id_are_kept(self, make_estimate):
        a = make_estimate(external_id=None)
        b = make_estimate(external_id=None)
        c = make_estimate(external_id="")

        assert dedupe([a, b, c]) == [a, b, c]

    def test_order_preserved_and_input_untouched(self, make_estimate):
        records = [make_estimate(external_id=f"EST{i % 3}") for i in range(7)]
        snapshot = list(records)

        result = dedupe(records)

        assert [r.external_id for r in result] == ["EST0", "EST1", "EST2"]
        assert result is not records
        assert records == snapshot

    def test_deterministic(self, make_estimate):
        records = [make_estimate(external_id=f"EST{i % 4}") for i in range(10)]
        assert dedupe(records) == dedupe(records)

    def test_empty(self):
        assert dedupe([]) == []
