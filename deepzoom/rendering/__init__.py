"""Coloring, frame snapshots and image export."""
