"""Configuration files and bookmarks."""
