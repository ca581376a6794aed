"""Batch subtitle translation with retry and resumable progress."""

__version__ = "0.1.0"
