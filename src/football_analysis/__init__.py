"""Market probabilities, streaks and picks derived from football fixture history."""

__version__ = "0.1.0"
