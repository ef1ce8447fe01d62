"""reelforge: turn narration scripts into short vertical videos."""

__version__ = "1.0.0"
