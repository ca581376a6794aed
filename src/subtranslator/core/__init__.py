"""Service layer: file-level translation and checkpoint persistence."""

from .checkpoint import CheckpointStore
from .service import TranslationService, TranslationReport

__all__ = ["CheckpointStore", "TranslationService", "TranslationReport"]
