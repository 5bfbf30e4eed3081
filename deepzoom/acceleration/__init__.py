"""Parallel evaluation backends."""
