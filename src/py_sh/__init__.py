"""py-sh — a small shell over a persistent virtual filesystem."""

__version__ = "0.1.0"
