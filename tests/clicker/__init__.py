"""Clicker economy test suite.

Run:
    pytest tests/clicker/ -v
"""
