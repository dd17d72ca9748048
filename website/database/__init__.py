"""Persistence layer: ORM models, sessions and content store adapters."""
