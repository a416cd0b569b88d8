"""Test infrastructure - fakes for the capture boundaries.

This package contains test support code, NOT actual tests.
"""
