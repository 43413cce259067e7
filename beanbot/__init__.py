"""Per-channel running balance bot for Discord, backed by PostgreSQL."""

__version__ = "0.1.0"
