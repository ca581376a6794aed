"""Batching, retry and orchestration of subtitle translation."""

from .batch import Batch, segment, format_context, reconcile
from .engine import TranslationEngine, GeminiBackend, OllamaBackend
from .errors import TranslationError, TranslationCancelled
from .orchestrator import BatchOrchestrator, BatchProgress, CheckpointState, LogEvent, LogEventType
from .retry import CancelToken, call_with_retry

__all__ = [
    "Batch",
    "segment",
    "format_context",
    "reconcile",
    "TranslationEngine",
    "GeminiBackend",
    "OllamaBackend",
    "TranslationError",
    "TranslationCancelled",
    "BatchOrchestrator",
    "BatchProgress",
    "CheckpointState",
    "LogEvent",
    "LogEventType",
    "CancelToken",
    "call_with_retry",
]
