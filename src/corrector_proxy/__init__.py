"""Relay proxy between the corrector browser extension and a completion API."""

__version__ = "0.1.0"
