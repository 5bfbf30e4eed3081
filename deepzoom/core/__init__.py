"""Orbit evaluation, coordinate transforms and reference management."""
