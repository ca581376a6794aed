"""Subtitle file parsing and models."""

from .models import SubtitleEntry, SubtitleFile
from .parser import SubtitleParser

__all__ = ["SubtitleEntry", "SubtitleFile", "SubtitleParser"]
