"""Configuration for the subtitle translator."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Language code to name used in the translation prompt
LANGUAGE_NAMES = {
    "persian": "Persian (Farsi)",
    "arabic": "Arabic",
    "spanish": "Spanish",
    "french": "French",
    "german": "German",
    "italian": "Italian",
    "portuguese": "Portuguese",
    "russian": "Russian",
    "chinese": "Simplified Chinese",
    "japanese": "Japanese",
    "korean": "Korean",
    "turkish": "Turkish",
    "hindi": "Hindi",
}

MIN_BATCH_SIZE = 10
MAX_BATCH_SIZE = 100

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_CHECKPOINT_PATH = Path.home() / ".config" / "subtranslator" / "progress.json"


@dataclass
class TranslationConfig:
    """Configuration for a translation run.

    Attributes:
        target_language: Target language code (key of LANGUAGE_NAMES).
        batch_size: Entries per batch, clamped to [10, 100] when segmenting.
        context_window: Number of preceding entries supplied as context.
        max_retries: Retries allowed for rate-limited or empty responses.
        retry_base_delay: Base backoff delay in seconds (doubled per retry).
        retry_max_jitter: Upper bound of the random jitter added to each backoff.
        batch_delay: Pause between consecutive batches in seconds.
        provider: Translation backend, "gemini" or "ollama".
        gemini_api_key: API key for Gemini.
        gemini_model: Gemini model name.
        gemini_api_base: Base URL of the Gemini models endpoint.
        ollama_url: URL for Ollama API.
        ollama_model: Model name for Ollama.
        request_timeout: HTTP timeout for one translation request.
        checkpoint_path: Where resumable progress is stored.
        verbose: If True, print detailed output.
    """
    target_language: str = "persian"
    batch_size: int = 50
    context_window: int = 3
    max_retries: int = 5
    retry_base_delay: float = 15.0
    retry_max_jitter: float = 2.0
    batch_delay: float = 4.0
    provider: str = "gemini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_base: str = GEMINI_API_BASE
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "translategemma:12b"
    request_timeout: float = 120
    checkpoint_path: Optional[Path] = None
    verbose: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "TranslationConfig":
        """Build a config seeded from environment variables.

        Reads GEMINI_API_KEY and SUBTRANSLATOR_MODEL. Explicit keyword
        overrides win over the environment; None overrides are ignored.
        """
        values = {}
        api_key = os.environ.get("GEMINI_API_KEY")
        if api_key:
            values["gemini_api_key"] = api_key
        model = os.environ.get("SUBTRANSLATOR_MODEL")
        if model:
            values["gemini_model"] = model
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def get_language_name(self, code: str) -> str:
        """Get the full language name for a language code.

        Args:
            code: Language code (e.g., "persian").

        Returns:
            Full language name (e.g., "Persian (Farsi)").
        """
        return LANGUAGE_NAMES.get(code, code)

    def get_checkpoint_path(self) -> Path:
        """Resolve the checkpoint file location."""
        return Path(self.checkpoint_path) if self.checkpoint_path else DEFAULT_CHECKPOINT_PATH
