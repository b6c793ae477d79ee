"""nmcleaner - find and remove stale node_modules directories."""

__version__ = "1.0.0"
