"""Personal website engine with filesystem-driven content synchronization."""

__version__ = "0.1.0"
