'''
Team Insights Backend Test Suite

Test Modules:
-------------
- test_rate_limiter.py: Minimum interval, rolling window, denial leaves state unchanged
- test_insight_cache.py: Fingerprints, TTL boundary, overwrite, sweep and clear
- test_prompt_and_parser.py: Prompt determinism, tolerant parsing, supporting data
- test_fallback.py: Totality and data grounding of fallback insights
- test_insight_service.py: Orchestrator scenarios (cache, rate limit, supersession,
  timeouts, debounce, status, shutdown)
- test_subject_data.py: Dataset assembly and team roll-up from metric responses
- test_api.py: HTTP endpoints through FastAPI TestClient

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
