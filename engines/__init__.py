"""Precision Teaching analytics engines."""
