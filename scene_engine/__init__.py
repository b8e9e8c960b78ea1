"""Scene generation job service."""

__version__ = "0.1.0"
