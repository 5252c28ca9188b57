"""Kana writing practice: stroke capture, verification and progress tracking."""

__version__ = "0.1.0"
