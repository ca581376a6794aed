"""Translation engine with Gemini and Ollama backends."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import requests

from ..config import TranslationConfig, LANGUAGE_NAMES
from ..subtitles import SubtitleEntry
from .batch import Batch, format_context, format_entries
from .errors import (
    AuthenticationFailed,
    ContentBlocked,
    EmptyResponse,
    InvalidRequest,
    ProviderUnavailable,
    RateLimited,
)

logger = logging.getLogger(__name__)

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def raise_for_status(response: requests.Response, provider: str) -> None:
    """Map an HTTP error response onto the translation error taxonomy.

    Args:
        response: Response returned by the provider.
        provider: Provider name used in messages.

    Raises:
        InvalidRequest: On HTTP 400.
        AuthenticationFailed: On HTTP 401 or 403.
        RateLimited: On HTTP 429.
        ProviderUnavailable: On any other non-2xx status.
    """
    status = response.status_code
    if status < 400:
        return

    try:
        detail = response.json().get("error", {}).get("message") or f"HTTP {status}"
    except (ValueError, AttributeError):
        detail = f"HTTP {status}"

    if status == 400:
        raise InvalidRequest(f"Invalid request: {detail}")
    if status in (401, 403):
        raise AuthenticationFailed(f"Invalid API key. Please check your {provider} API key.")
    if status == 429:
        raise RateLimited("Rate limit exceeded (HTTP 429)")
    if status >= 500:
        raise ProviderUnavailable(f"{provider} server error: {detail}", status_code=status)
    raise ProviderUnavailable(f"{provider} API error: {detail}", status_code=status)


class TranslationBackend(ABC):
    """Abstract base class for text generation backends."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt and return the generated text.

        Args:
            prompt: Complete prompt text.

        Returns:
            Generated text.

        Raises:
            TranslationError: Classified provider failure.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is available and ready."""
        pass


class GeminiBackend(TranslationBackend):
    """Google Gemini generateContent backend."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 120
    ):
        """Initialize the Gemini backend.

        Args:
            api_key: Gemini API key.
            model: Model name.
            api_base: Base URL of the models endpoint.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.api_base}/{self.model}:generateContent"

    def _post(self, body: dict) -> requests.Response:
        try:
            return requests.post(
                self.url,
                headers={"x-goog-api-key": self.api_key},
                json=body,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Could not reach Gemini API: {e}") from e

    def generate(self, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.3,  # Low temperature for consistent translations
                "topP": 0.8,
                "topK": 40,
                "maxOutputTokens": 8192,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in HARM_CATEGORIES
            ],
        }

        response = self._post(body)
        raise_for_status(response, "Gemini")

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyResponse(f"Empty response from Gemini API: invalid JSON ({e})") from e

        logger.debug(f"Gemini response: {json.dumps(data)[:2000]}")
        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Pull the generated text out of a generateContent response."""
        if not isinstance(data, dict):
            raise EmptyResponse(f"Empty response from Gemini API: unexpected body {type(data).__name__}")

        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise ContentBlocked(f"Content blocked: {feedback['blockReason']}")

        candidates = data.get("candidates") or []
        if not candidates:
            if feedback:
                raise EmptyResponse(f"No response from Gemini API. Feedback: {json.dumps(feedback)}")
            raise EmptyResponse("No response from Gemini API - empty candidates")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise EmptyResponse("Empty response from Gemini API - malformed candidate")
        finish_reason = candidate.get("finishReason")
        if finish_reason == "SAFETY":
            ratings = ", ".join(
                f"{r.get('category')}: {r.get('probability')}"
                for r in candidate.get("safetyRatings") or []
            )
            raise ContentBlocked(f"Response blocked by safety filter: {ratings or 'unknown reason'}")
        if finish_reason == "RECITATION":
            raise ContentBlocked("Response blocked due to recitation/copyright concerns")

        parts = (candidate.get("content") or {}).get("parts") or []
        if not parts or not isinstance(parts[0], dict) or not parts[0].get("text"):
            raise EmptyResponse(
                f"Empty response from Gemini API. Finish reason: {finish_reason or 'unknown'}"
            )
        return parts[0]["text"]

    def is_available(self) -> bool:
        """Validate the API key with a minimal request."""
        if not self.api_key or not self.api_key.strip():
            return False
        try:
            response = self._post({
                "contents": [{"parts": [{"text": 'Say "OK" if you receive this.'}]}],
                "generationConfig": {"maxOutputTokens": 10},
            })
        except ProviderUnavailable:
            return False
        return response.ok


class OllamaBackend(TranslationBackend):
    """Ollama-based backend for local models."""

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "translategemma:12b",
        timeout: float = 180
    ):
        """Initialize the Ollama backend.

        Args:
            url: Ollama API URL.
            model: Model name to use.
            timeout: Request timeout in seconds.
        """
        self.url = url.rstrip('/')
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        try:
            response = requests.post(
                f"{self.url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {
                        "temperature": 0.1,
                    }
                },
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Could not reach Ollama: {e}") from e

        raise_for_status(response, "Ollama")

        try:
            data = response.json()
        except ValueError:
            data = None

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise EmptyResponse("Empty response from Ollama")
        return text.strip()

    def is_available(self) -> bool:
        """Check if Ollama is running and the model is available."""
        try:
            response = requests.get(f"{self.url}/api/tags", timeout=5)
            response.raise_for_status()

            models = response.json().get("models", [])
            model_names = [m.get("name", "") for m in models]

            base_model = self.model.split(":")[0]
            return any(
                self.model in name or base_model in name
                for name in model_names
            )
        except (requests.RequestException, json.JSONDecodeError):
            return False


class TranslationEngine:
    """Builds subtitle prompts and sends them to the configured backend."""

    def __init__(self, config: Optional[TranslationConfig] = None):
        """Initialize the translation engine.

        Args:
            config: Translation configuration. Uses defaults if not provided.
        """
        self.config = config or TranslationConfig()
        self._backend: Optional[TranslationBackend] = None

    @property
    def backend(self) -> TranslationBackend:
        """Get or create the translation backend."""
        if self._backend is None:
            if self.config.provider == "ollama":
                self._backend = OllamaBackend(
                    self.config.ollama_url,
                    self.config.ollama_model,
                    timeout=self.config.request_timeout
                )
            else:
                self._backend = GeminiBackend(
                    self.config.gemini_api_key or "",
                    self.config.gemini_model,
                    self.config.gemini_api_base,
                    timeout=self.config.request_timeout
                )
        return self._backend

    def build_prompt(
        self,
        entries: Sequence[SubtitleEntry],
        target_language: str,
        context_entries: Sequence[SubtitleEntry] = (),
        translated_context: Sequence[SubtitleEntry] = ()
    ) -> str:
        """Create the translation prompt for one batch.

        Args:
            entries: Entries to translate.
            target_language: Target language code.
            context_entries: Original entries preceding the batch.
            translated_context: Translations of those entries, if any.

        Returns:
            Prompt text.
        """
        lang_name = LANGUAGE_NAMES.get(target_language, target_language)

        prompt = (
            f"You are a professional subtitle translator. Translate the following "
            f"English subtitles to {lang_name}.\n\n"
            f"CRITICAL RULES:\n"
            f"1. Translate ONLY the text, preserving the exact format\n"
            f"2. Keep the [number] markers exactly as they appear\n"
            f"3. Maintain the same number of subtitle entries\n"
            f"4. Use natural, conversational {lang_name} appropriate for subtitles\n"
            f"5. Keep translations concise to fit on screen\n"
            f"6. Preserve any speaker labels or sound descriptions in brackets\n"
            f"7. Do NOT add any explanations or notes\n"
            f"8. Separate each translated entry with \"---\" on its own line\n\n"
        )

        context = format_context(context_entries, translated_context)
        if context:
            prompt += f"PREVIOUS CONTEXT (for consistency):\n{context}\n\n"

        prompt += (
            f"SUBTITLES TO TRANSLATE:\n{format_entries(entries)}\n\n"
            f"TRANSLATED SUBTITLES (in {lang_name}):"
        )
        return prompt

    def translate(
        self,
        entries: Sequence[SubtitleEntry],
        target_language: str,
        context_entries: Sequence[SubtitleEntry] = (),
        translated_context: Sequence[SubtitleEntry] = ()
    ) -> str:
        """Translate entries and return the raw provider text."""
        prompt = self.build_prompt(entries, target_language, context_entries, translated_context)
        return self.backend.generate(prompt)

    def translate_batch(
        self,
        batch: Batch,
        target_language: str,
        translated_context: Sequence[SubtitleEntry] = ()
    ) -> str:
        """Translate one batch, using its original context entries.

        Args:
            batch: Batch to translate.
            target_language: Target language code.
            translated_context: Most recently translated entries.

        Returns:
            Raw response text, to be reconciled against ``batch.entries``.
        """
        return self.translate(
            batch.entries,
            target_language,
            batch.context_entries,
            translated_context
        )

    def is_available(self) -> bool:
        """Check if the translation backend is available."""
        return self.backend.is_available()
