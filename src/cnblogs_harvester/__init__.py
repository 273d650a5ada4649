"""Periodic cnblogs front page harvester with a daily mail digest."""

__version__ = "0.1.0"
