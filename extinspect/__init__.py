"""Inspect and edit ext2/ext3/ext4 filesystem structures from Python or a curses terminal."""

__version__ = "0.1.0"