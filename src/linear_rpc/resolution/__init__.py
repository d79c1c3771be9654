"""Identifier resolution with a time-bounded cache."""
