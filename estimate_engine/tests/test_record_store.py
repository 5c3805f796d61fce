"""
Record Store Test Module

Tests pagination until a short page, row-to-model mapping (including rows that
fail validation) and per-account isolation of segment write-back failures.
All database access goes through a mocked asyncpg pool.
"""

import json
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from estimate_engine.core.config import get_settings
from estimate_engine.models.enums import EstimateType, Segment
from estimate_engine.services.record_store import (
    fetch_all_accounts,
    fetch_all_estimates,
    fetch_all_rows,
    persist_segments,
    row_to_account,
    serialize_segment_map,
)


pytestmark = pytest.mark.asyncio

POOL_PATH = 'estimate_engine.services.record_store.get_db_pool'


def _estimate_row(external_id: str, **overrides):
    row = {
        'external_id': external_id,
        'account_id': 'acct-1',
        'status_text': 'Contract Signed',
        'pipeline_status_text': None,
        'price_ex_tax': Decimal('100'),
        'price_inc_tax': Decimal('113'),
        'estimate_date': '2024-05-01',
        'close_date': None,
        'contract_start': None,
        'contract_end': None,
        'created_date': None,
        'division': 'Maintenance',
        'address': '1 A St',
        'estimate_type': 'Service',
        'exclude_from_stats': None,
        'archived': False,
    }
    row.update(overrides)
    return row


class TestPagination:
    """Pages are requested until one comes back short."""

    async def test_stops_on_short_page(self, mock_db_pool, mock_conn):
        mock_conn.fetch.side_effect = [[{'n': 1}, {'n': 2}], [{'n': 3}]]

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            rows = await fetch_all_rows('SELECT', page_size=2)

        assert [r['n'] for r in rows] == [1, 2, 3]
        assert mock_conn.fetch.await_count == 2
        assert mock_conn.fetch.await_args_list[0].args == ('SELECT', 2, 0)
        assert mock_conn.fetch.await_args_list[1].args == ('SELECT', 2, 2)

    async def test_full_last_page_requests_one_more(self, mock_db_pool, mock_conn):
        mock_conn.fetch.side_effect = [[{'n': 1}, {'n': 2}], []]

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            rows = await fetch_all_rows('SELECT', page_size=2)

        assert len(rows) == 2
        assert mock_conn.fetch.await_count == 2

    async def test_default_page_size_from_settings(self, mock_db_pool, mock_conn):
        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            await fetch_all_rows('SELECT')

        assert mock_conn.fetch.await_args.args == ('SELECT', get_settings().record_page_size, 0)

    async def test_retrieval_failure_propagates(self, mock_db_pool, mock_conn):
        mock_conn.fetch.side_effect = ConnectionError('store unavailable')

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            with pytest.raises(ConnectionError):
                await fetch_all_estimates(page_size=10)


class TestRowMapping:
    """Rows are validated into frozen models; bad rows are skipped."""

    async def test_fetch_all_estimates(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [
            _estimate_row('E1'),
            _estimate_row('E2', archived='not-a-bool'),
            _estimate_row('E3', contract_end='31/31/2025'),
        ]

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            estimates = await fetch_all_estimates(page_size=10)

        assert [e.external_id for e in estimates] == ['E1', 'E3']
        assert estimates[0].estimate_type == EstimateType.SERVICE
        assert estimates[0].estimate_date == date(2024, 5, 1)
        assert estimates[0].exclude_from_stats is False
        assert estimates[1].unparseable_dates == ('contract_end',)

    async def test_fetch_all_accounts(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [
            {'id': 'a-1', 'name': 'Alpha', 'annual_revenue': Decimal('5000'), 'archived': False,
             'segment_by_year': '{"2024": "A"}', 'revenue_segment': 'A', 'snoozed_until': None},
            {'id': '', 'name': 'No Id', 'annual_revenue': None, 'archived': False,
             'segment_by_year': None, 'revenue_segment': None, 'snoozed_until': None},
        ]

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            accounts = await fetch_all_accounts(page_size=10)

        assert len(accounts) == 1
        assert accounts[0].segment_by_year == {2024: Segment.A}

    async def test_row_to_account_defaults(self):
        account = row_to_account({'id': 'a-2', 'annual_revenue': None, 'archived': None,
                                  'segment_by_year': ''})
        assert account.annual_revenue == Decimal('0')
        assert account.archived is False
        assert account.segment_by_year == {}


class TestPersistSegments:
    """Each account is written independently."""

    async def test_failure_is_isolated(self, mock_db_pool, mock_conn, make_account):
        accounts = [
            make_account(id='ok-1', segment_by_year={2025: 'B', 2024: 'A'}, revenue_segment='B'),
            make_account(id='bad', segment_by_year={2025: 'C'}, revenue_segment='C'),
            make_account(id='ok-2', segment_by_year={2025: 'D'}, revenue_segment='D'),
        ]
        mock_conn.execute.side_effect = ['UPDATE 1', RuntimeError('deadlock detected'), 'UPDATE 1']

        with patch(POOL_PATH, new=AsyncMock(return_value=mock_db_pool)):
            results = await persist_segments(accounts)

        assert [(r.account_id, r.ok) for r in results] == [('ok-1', True), ('bad', False), ('ok-2', True)]
        assert results[1].error == 'deadlock detected'
        assert mock_conn.execute.await_count == 3

        first_call = mock_conn.execute.await_args_list[0].args
        assert first_call[1] == 'ok-1'
        assert json.loads(first_call[2]) == {'2024': 'A', '2025': 'B'}
        assert first_call[3] == 'B'

    async def test_empty_batch_skips_database(self, mock_db_pool):
        pool_getter = AsyncMock(return_value=mock_db_pool)
        with patch(POOL_PATH, new=pool_getter):
            assert await persist_segments([]) == []
        pool_getter.assert_not_awaited()

    async def test_serialize_segment_map(self, make_account):
        account = make_account(segment_by_year={2025: 'A', 2023: 'C'})
        assert serialize_segment_map(account) == '{"2023": "C", "2025": "A"}'
