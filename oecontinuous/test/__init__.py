"""
Tests for oecontinuous, run with ``pytest oecontinuous/test``.
"""
