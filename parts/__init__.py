# parts
"""Package lifecycle engine: isolated per-version prefixes exposed through a symlink farm."""

__version__ = "1.0.0"
