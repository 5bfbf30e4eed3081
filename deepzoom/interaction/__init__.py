"""Pointer and wheel gesture handling."""
