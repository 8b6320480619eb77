"""
API contract tests for the attribution routers.

Uses FastAPI's TestClient with dependency overrides for settings and the
click event source; the database lifecycle and persistence calls are patched.

Contracts:
- POST /api/analyze-sale -> { sale_data, estimated_click_time, analysis, top_result, events_found }
- errors -> { error: "<message>" } with 400 / 502 / 503
- GET /api/history -> { data: [...] }
"""

from datetime import datetime, timezone
from typing import Generator, List
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from backend.core.config import Settings
from backend.core.dependencies import get_event_source, get_settings_dependency
from backend.core.exceptions import SourceMalformed, SourceUnavailable
from backend.main import app
from backend.models import ClickEvent, EventIngestionResult, HistoryItem, ValidationError
from backend.services.event_store import InMemoryClickEventSource
from backend.tests.conftest import create_csv_bytes


@pytest.fixture
def client(test_settings: Settings, scenario_b_clicks: List[ClickEvent]) -> Generator[TestClient, None, None]:
    """TestClient with in-memory clicks and no database."""
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    app.dependency_overrides[get_event_source] = lambda: InMemoryClickEventSource(scenario_b_clicks)

    with patch('backend.main.init_db', new=AsyncMock()), \
            patch('backend.main.close_db', new=AsyncMock()):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()


def failing_source(error: Exception) -> Mock:
    source = Mock()
    source.fetch = AsyncMock(side_effect=error)
    return source


class TestAnalyzeSale:

    def test_attributes_sale(self, client: TestClient, sample_message: str):
        with patch('backend.api.sales.save_history_record', new=AsyncMock(return_value=1)) as save:
            response = client.post('/api/analyze-sale', json={'message': sample_message})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {'sale_data', 'estimated_click_time', 'analysis', 'top_result', 'events_found'}
        assert body['estimated_click_time'] == '2025-06-27 22:54:09'
        assert body['events_found'] == 4
        assert body['top_result'] == body['analysis'][0]
        assert body['top_result']['campaign'] == 'X'
        assert body['top_result']['confidence'] == 'High'
        assert body['top_result']['click_count'] == 3
        assert body['sale_data']['client_id'] == '2054698907'
        assert body['sale_data']['value'] == 29.9
        save.assert_called_once()

    def test_message_without_purchase_time(self, client: TestClient):
        with patch('backend.api.sales.save_history_record', new=AsyncMock(return_value=1)):
            response = client.post('/api/analyze-sale', json={'message': '🆔 ID Cliente: 5'})

        assert response.status_code == 200
        body = response.json()
        assert body['estimated_click_time'] == ''
        assert body['analysis'] == []
        assert body['top_result'] is None
        assert body['events_found'] == 0

    @pytest.mark.parametrize('message', ['', '   \n  '])
    def test_blank_message_rejected(self, client: TestClient, message: str):
        response = client.post('/api/analyze-sale', json={'message': message})

        assert response.status_code == 400
        assert response.json() == {'error': 'Message is required'}

    def test_missing_message_field(self, client: TestClient):
        response = client.post('/api/analyze-sale', json={})

        assert response.status_code == 422

    @pytest.mark.parametrize('error,status', [
        (SourceUnavailable('Click event store unavailable'), 503),
        (SourceMalformed('Click event record 2 could not be parsed'), 502),
    ])
    def test_event_source_errors(self, client: TestClient, sample_message: str, error: Exception, status: int):
        app.dependency_overrides[get_event_source] = lambda: failing_source(error)

        with patch('backend.api.sales.save_history_record', new=AsyncMock()) as save:
            response = client.post('/api/analyze-sale', json={'message': sample_message})

        assert response.status_code == status
        assert response.json() == {'error': str(error)}
        save.assert_not_called()

    def test_unexpected_error_returns_json_500(self, client: TestClient, sample_message: str):
        error = TypeError("can't compare offset-naive and offset-aware datetimes")
        app.dependency_overrides[get_event_source] = lambda: failing_source(error)

        with patch('backend.api.sales.save_history_record', new=AsyncMock()) as save:
            response = client.post('/api/analyze-sale', json={'message': sample_message})

        assert response.status_code == 500
        assert response.json()['detail'].startswith('Failed to analyze sale')
        save.assert_not_called()

    def test_out_of_range_conversion_time_is_not_an_error(self, client: TestClient):
        message = "🆔 ID Cliente: 9\n⏳ Tempo Conversão: 1000000d\n🕓 Data e Hora da compra: 27/06/2025 22:58"

        with patch('backend.api.sales.save_history_record', new=AsyncMock(return_value=1)):
            response = client.post('/api/analyze-sale', json={'message': message})

        assert response.status_code == 200
        assert response.json()['estimated_click_time'] == ''
        assert response.json()['top_result'] is None


class TestHistory:

    def test_lists_history(self, client: TestClient):
        item = HistoryItem(
            id=3,
            client_id='2054698907',
            campaign='X',
            creative='Y',
            confidence='High',
            click_count=3,
            events_found=4,
            created_at=datetime(2025, 6, 27, 23, 0, tzinfo=timezone.utc),
        )

        with patch('backend.api.history.list_history', new=AsyncMock(return_value=[item])) as list_mock:
            response = client.get('/api/history', params={'search': 'x'})

        assert response.status_code == 200
        body = response.json()
        assert list(body) == ['data']
        assert body['data'][0]['id'] == 3
        assert body['data'][0]['campaign'] == 'X'
        list_mock.assert_awaited_once_with(limit=50, search='x')

    def test_limit_is_capped(self, client: TestClient):
        with patch('backend.api.history.list_history', new=AsyncMock(return_value=[])) as list_mock:
            response = client.get('/api/history', params={'limit': 10000})

        assert response.status_code == 200
        assert list_mock.call_args.kwargs['limit'] == 500

    def test_invalid_limit(self, client: TestClient):
        response = client.get('/api/history', params={'limit': 0})

        assert response.status_code == 422

    def test_database_failure(self, client: TestClient):
        with patch('backend.api.history.list_history', new=AsyncMock(side_effect=OSError('db down'))):
            response = client.get('/api/history')

        assert response.status_code == 500


class TestEvents:

    def test_ingest_json(self, client: TestClient, sample_click_rows):
        result = EventIngestionResult(success=True, rows_processed=3, rows_inserted=3, errors=[])

        with patch('backend.api.events.ingest_click_events', new=AsyncMock(return_value=result)) as ingest:
            response = client.post('/api/events', json={'rows': sample_click_rows})

        assert response.status_code == 200
        assert response.json()['rows_inserted'] == 3
        assert ingest.call_args.kwargs['rows'] == sample_click_rows

    def test_upload_csv(self, client: TestClient, sample_click_rows):
        result = EventIngestionResult(
            success=False,
            rows_processed=0,
            rows_inserted=0,
            errors=[ValidationError(field='timestamp', message='bad', row_number=2)],
        )

        with patch('backend.api.events.ingest_click_events', new=AsyncMock(return_value=result)):
            response = client.post(
                '/api/events/upload',
                files={'file': ('clicks.csv', create_csv_bytes(sample_click_rows), 'text/csv')},
            )

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is False
        assert body['errors'][0]['row_number'] == 2


class TestJobs:

    def test_trigger_digest(self, client: TestClient):
        digest = AsyncMock(return_value={'success': True, 'skipped': True, 'date': '2025-06-27'})

        with patch('backend.api.jobs.send_slack_digest', new=digest):
            response = client.post('/api/jobs/slack-digest', params={'digest_date': '2025-06-27', 'force': 'true'})

        assert response.status_code == 200
        assert response.json()['skipped'] is True
        called = digest.call_args.kwargs
        assert str(called['digest_date']) == '2025-06-27'
        assert called['force'] is True


class TestHealth:

    def test_health(self, client: TestClient):
        assert client.get('/health').json() == {'status': 'healthy'}

    def test_root(self, client: TestClient):
        assert client.get('/').json()['name'] == 'Sale Attribution API'
