"""Order lifecycle, stock reservation and order events."""

__version__ = "0.1.0"