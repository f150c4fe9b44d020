"""Integration tests for barstock.

These tests require external dependencies:
- A PostgreSQL database at TEST_DATABASE_URL

Run with: pytest tests/integration/ -v
Skip with: pytest -m "not integration"
"""
