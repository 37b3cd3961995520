"""
Integration tests for Autolend.

The whole bot is wired together (configuration file, logger, engine, scheduler)
against an in-memory exchange.

Run integration tests with:
    pytest --run-integration tests/integration/
"""
