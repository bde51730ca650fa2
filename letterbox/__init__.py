"""letterbox: real-time room server for a timed word-categories game."""

__version__ = "1.0.0"
