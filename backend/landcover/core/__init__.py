"""Configuration and logging for the land-cover backend."""
