"""Utility helpers for the report engine."""
