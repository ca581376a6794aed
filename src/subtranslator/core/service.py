"""Main translation service orchestration."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from ..config import TranslationConfig
from ..subtitles import SubtitleEntry, SubtitleFile, SubtitleParser
from ..translation import BatchOrchestrator, CancelToken, CheckpointState, TranslationEngine, segment
from ..translation.orchestrator import CheckpointCallback, LogCallback, ProgressCallback
from .checkpoint import CheckpointStore

logger = logging.getLogger(__name__)


@dataclass
class TranslationReport:
    """Report of a translation run.

    Attributes:
        source_file: Path to the source file.
        output_file: Path the translated file was written to.
        total_entries: Number of subtitle entries translated.
        total_batches: Number of batches in the run.
        resumed_from: Batch index the run started at (0 for a fresh run).
        entries: Translated entries.
    """
    source_file: Path
    output_file: Path
    total_entries: int
    total_batches: int
    resumed_from: int
    entries: list[SubtitleEntry]


def default_output_path(source_file: Path, target_language: str, subtitle: SubtitleFile) -> Path:
    """Build "<stem>_<language><ext>" next to the source file."""
    source_file = Path(source_file)
    return source_file.with_name(f"{source_file.stem}_{target_language}{subtitle.extension}")


class TranslationService:
    """Main service that orchestrates the translation workflow."""

    def __init__(
        self,
        config: Optional[TranslationConfig] = None,
        store: Optional[CheckpointStore] = None,
        engine: Optional[TranslationEngine] = None
    ):
        """Initialize the translation service.

        Args:
            config: Translation configuration.
            store: Checkpoint persistence. Defaults to the configured path.
            engine: Translation engine. Built from config if not provided.
        """
        self.config = config or TranslationConfig()
        self.store = store or CheckpointStore(self.config.get_checkpoint_path())
        self.engine = engine or TranslationEngine(self.config)
        self.parser = SubtitleParser()

    def translate_file(
        self,
        source_file: Path,
        target_language: Optional[str] = None,
        output_path: Optional[Path] = None,
        resume: bool = True,
        progress_callback: Optional[ProgressCallback] = None,
        log_callback: Optional[LogCallback] = None,
        cancel_token: Optional[CancelToken] = None
    ) -> TranslationReport:
        """Translate a subtitle file, resuming saved progress when possible.

        Args:
            source_file: Path to the .srt or .vtt file.
            target_language: Target language code. Uses config default if not provided.
            output_path: Where to write the result. Defaults to
                "<stem>_<language><ext>" beside the source.
            resume: Resume from a matching checkpoint if one exists.
            progress_callback: Optional callback for progress updates.
            log_callback: Optional callback for log events.
            cancel_token: Optional cancellation signal.

        Returns:
            TranslationReport with results.

        Raises:
            TranslationError: If the run fails. Progress is saved first.
        """
        source_file = Path(source_file)
        target_language = target_language or self.config.target_language
        subtitle = self.parser.parse_file(source_file)
        entries = subtitle.entries

        batch_size = self.config.batch_size
        resume_from = 0
        resume_entries: list[SubtitleEntry] = []

        if resume:
            saved = self.store.find_resumable(source_file.name, target_language)
            if saved is not None and saved.original_entries == entries:
                # Same partition as the interrupted run
                batch_size = saved.batch_size
                resume_from = saved.completed_batches
                resume_entries = saved.translated_entries
                logger.info(
                    f"Resuming {source_file.name} at batch {resume_from + 1}/{saved.total_batches}"
                )
            elif saved is not None:
                logger.warning(f"Ignoring saved progress: {source_file.name} has changed")

        orchestrator = BatchOrchestrator(
            self.engine.translate_batch,
            config=self.config,
            cancel_token=cancel_token
        )

        translated = orchestrator.run(
            entries,
            target_language=target_language,
            batch_size=batch_size,
            progress_callback=progress_callback,
            log_callback=log_callback,
            checkpoint_callback=self._checkpoint_saver(source_file, subtitle),
            resume_from=resume_from,
            resume_entries=resume_entries
        )

        result = SubtitleFile(format=subtitle.format, header=subtitle.header, entries=translated)
        output_file = Path(output_path) if output_path else default_output_path(
            source_file, target_language, subtitle
        )
        self.parser.write(result, output_file)
        self.store.clear()

        return TranslationReport(
            source_file=source_file,
            output_file=output_file,
            total_entries=len(translated),
            total_batches=len(segment(entries, batch_size, self.config.context_window)),
            resumed_from=resume_from,
            entries=translated
        )

    def _checkpoint_saver(self, source_file: Path, subtitle: SubtitleFile) -> CheckpointCallback:
        """Build a checkpoint callback that tags state with file details."""
        def save(state: CheckpointState) -> None:
            self.store.save(replace(
                state,
                source_file=source_file.name,
                file_format=subtitle.format,
                header=subtitle.header
            ))
        return save

    def is_ready(self) -> tuple[bool, str]:
        """Check if the service is ready to translate.

        Returns:
            Tuple of (is_ready, message).
        """
        if self.config.provider != "ollama" and not self.config.gemini_api_key:
            return False, "No Gemini API key configured. Set GEMINI_API_KEY or pass --api-key."
        if not self.engine.is_available():
            if self.config.provider == "ollama":
                return False, (
                    f"Translation backend not available. "
                    f"Make sure Ollama is running with {self.config.ollama_model}"
                )
            return False, f"Gemini rejected the API key or model {self.config.gemini_model}"
        return True, "Ready"
