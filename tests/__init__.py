# Clicker Test Suite
"""
Test suite for the clicker economy core.

Run all tests:
    pytest

Run with coverage:
    pytest --cov=clicker --cov-report=html
"""
