"""
tests/integration/
~~~~~~~~~~~~~~~~~~
Integration tests that call real external APIs.

These tests are SKIPPED by default. To run them:

    INTEGRATION_TESTS=1 pytest tests/integration/ -v

Rate Limit Considerations:
- OpenSky: 400 req/day anonymous, each test spends one - avoid in CI
- ADSBDB: be respectful with request frequency
"""
