"""
Tests for the attribution history store.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from backend.models import Confidence, HistoryRecord
from backend.services.history import insert_history_record, list_history, save_history_record
from backend.sql import INSERT_SALE_ANALYSIS


# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


@pytest.fixture
def history_record() -> HistoryRecord:
    return HistoryRecord(
        client_id='2054698907',
        plan='Plano Mensal',
        value=Decimal('29.90'),
        purchase_datetime=datetime(2025, 6, 27, 22, 58),
        conversion_seconds=231,
        estimated_click_time=datetime(2025, 6, 27, 22, 54, 9),
        campaign='X',
        creative='Y',
        utm_source='facebook',
        utm_medium='cpc',
        confidence=Confidence.HIGH,
        click_count=3,
        events_found=4,
    )


def history_row(row_id: int, campaign: str = 'X') -> dict:
    return {
        'id': row_id,
        'client_id': '2054698907',
        'plan': 'Plano Mensal',
        'value': Decimal('29.90'),
        'purchase_datetime': datetime(2025, 6, 27, 22, 58),
        'estimated_click_time': datetime(2025, 6, 27, 22, 54, 9),
        'campaign': campaign,
        'creative': 'Y',
        'utm_source': 'facebook',
        'utm_medium': 'cpc',
        'confidence': 'High',
        'click_count': 3,
        'events_found': 4,
        'created_at': datetime(2025, 6, 27, 23, 0, tzinfo=timezone.utc),
    }


class TestInsertHistory:

    async def test_inserts_record(self, mock_db_pool, mock_conn, history_record: HistoryRecord):
        mock_conn.fetchval.return_value = 17

        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            new_id = await insert_history_record(history_record)

        assert new_id == 17
        args = mock_conn.fetchval.call_args.args
        assert args[0] == INSERT_SALE_ANALYSIS
        assert args[1] == '2054698907'
        assert args[3] == Decimal('29.90')
        assert args[5] == 231
        assert args[11] == 'High'
        assert args[12:] == (3, 4)

    async def test_unattributed_record_stores_null_confidence(self, mock_db_pool, mock_conn):
        mock_conn.fetchval.return_value = 18

        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            await insert_history_record(HistoryRecord(client_id='1'))

        args = mock_conn.fetchval.call_args.args
        assert args[11] is None
        assert args[12] == 0

    async def test_save_swallows_database_errors(self, mock_db_pool, mock_conn, history_record: HistoryRecord):
        mock_conn.fetchval.side_effect = ConnectionResetError("connection lost")

        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            result = await save_history_record(history_record)

        assert result is None


class TestListHistory:

    async def test_lists_newest_first(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [history_row(2), history_row(1)]

        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            items = await list_history(limit=50)

        sql, *params = mock_conn.fetch.call_args.args
        assert 'ILIKE' not in sql
        assert params == [50]
        assert [item.id for item in items] == [2, 1]
        assert items[0].confidence == Confidence.HIGH

    async def test_search_uses_escaped_pattern(self, mock_db_pool, mock_conn):
        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            await list_history(limit=10, search='  50%_off ')

        sql, *params = mock_conn.fetch.call_args.args
        assert 'ILIKE $1' in sql
        assert params == ['%50\\%\\_off%', 10]

    async def test_blank_search_lists_everything(self, mock_db_pool, mock_conn):
        with patch('backend.services.history.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            await list_history(limit=5, search='   ')

        _, *params = mock_conn.fetch.call_args.args
        assert params == [5]
