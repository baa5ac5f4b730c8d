"""Utility helpers: money, periods, locks, errors and decorators."""
