'''
Sale Attribution Backend Test Suite

Test Modules:
-------------
- test_message_parser.py: label extraction, currency/duration/date parsing
- test_click_time.py: click-time estimate and matching window
- test_scoring.py: window filter, grouping, confidence, ranking order
- test_event_store.py: Postgres and in-memory click event sources
- test_attribution.py: end-to-end orchestration, partial results, failures
- test_history.py: history insert and listing
- test_event_ingestion.py: click log validation and insert
- test_jobs.py: Slack digest summary and idempotency
- test_api.py: router contracts and error bodies

Running Tests:
--------------
    pip install -e ".[test]"
    pytest backend/tests -v
'''

__all__ = []
