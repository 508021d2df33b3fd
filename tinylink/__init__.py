"""TinyLink: short codes that redirect to target URLs, with click tracking."""

__version__ = "1.0.0"
