"""Filesystem-driven content synchronization and caching engine."""
