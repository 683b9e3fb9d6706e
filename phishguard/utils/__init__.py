"""Utility helpers for PhishGuard."""
