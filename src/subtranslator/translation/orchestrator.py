"""Sequential batch translation with rolling context and checkpoints."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config import TranslationConfig
from ..subtitles import SubtitleEntry
from .batch import Batch, clamp_batch_size, reconcile, segment
from .errors import ProviderUnavailable, TranslationCancelled, is_retryable
from .retry import CancelToken, call_with_retry

logger = logging.getLogger(__name__)

# Entries shown in request/response log samples
LOG_SAMPLE_SIZE = 3


class LogEventType(Enum):
    """Kind of log event emitted during a run."""
    REQUEST = "request"
    RESPONSE = "response"
    WAITING = "waiting"
    ERROR = "error"


@dataclass
class LogEvent:
    """Structured log record for the caller.

    Attributes:
        event_type: What happened.
        message: One-line summary.
        details: Optional multi-line details (sample text, error message).
        batch_label: "i/N" label of the batch concerned, if any.
    """
    event_type: LogEventType
    message: str
    details: Optional[str] = None
    batch_label: Optional[str] = None


@dataclass
class BatchProgress:
    """Progress information for a translation run.

    Attributes:
        completed_batches: Batches finished so far.
        total_batches: Total number of batches.
        completed_entries: Entries translated so far.
        total_entries: Total number of entries to translate.
        status: Human readable status line.
        elapsed_seconds: Time elapsed since the run started.
    """
    completed_batches: int
    total_batches: int
    completed_entries: int
    total_entries: int
    status: str
    elapsed_seconds: float = 0.0

    @property
    def percent_complete(self) -> float:
        """Calculate percentage complete."""
        if self.total_batches == 0:
            return 100.0
        return (self.completed_batches / self.total_batches) * 100

    @property
    def elapsed_formatted(self) -> str:
        """Format elapsed time as mm:ss or hh:mm:ss."""
        total_secs = int(self.elapsed_seconds)
        hours, remainder = divmod(total_secs, 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"


@dataclass
class CheckpointState:
    """Resumable snapshot of a run.

    ``translated_entries`` always holds exactly the entries of the first
    ``completed_batches`` batches.

    Attributes:
        completed_batches: Number of batches fully translated.
        total_batches: Total number of batches in the run.
        total_entries: Total number of entries in the source.
        translated_entries: Output produced so far.
        original_entries: The full source entries.
        target_language: Language being translated into.
        batch_size: Clamped batch size used to segment the run.
        failed: True if the snapshot was taken because the run failed.
        saved_at: ISO-8601 time the snapshot was taken or persisted.
        source_file: Name of the source subtitle file.
        file_format: "srt" or "vtt".
        header: VTT header of the source file.
    """
    completed_batches: int
    total_batches: int
    total_entries: int
    translated_entries: list[SubtitleEntry]
    original_entries: list[SubtitleEntry]
    target_language: str
    batch_size: int
    failed: bool = False
    saved_at: str = field(default_factory=lambda: datetime.now().isoformat())
    source_file: str = ""
    file_format: str = "srt"
    header: str = ""

    @property
    def is_resumable(self) -> bool:
        return bool(self.translated_entries) and self.completed_batches < self.total_batches

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "completed_batches": self.completed_batches,
            "total_batches": self.total_batches,
            "total_entries": self.total_entries,
            "translated_entries": [e.to_dict() for e in self.translated_entries],
            "original_entries": [e.to_dict() for e in self.original_entries],
            "target_language": self.target_language,
            "batch_size": self.batch_size,
            "failed": self.failed,
            "saved_at": self.saved_at,
            "source_file": self.source_file,
            "file_format": self.file_format,
            "header": self.header,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CheckpointState":
        """Create from dictionary."""
        return cls(
            completed_batches=int(data["completed_batches"]),
            total_batches=int(data["total_batches"]),
            total_entries=int(data["total_entries"]),
            translated_entries=[SubtitleEntry.from_dict(e) for e in data["translated_entries"]],
            original_entries=[SubtitleEntry.from_dict(e) for e in data["original_entries"]],
            target_language=data["target_language"],
            batch_size=int(data["batch_size"]),
            failed=bool(data.get("failed", False)),
            saved_at=data.get("saved_at", ""),
            source_file=data.get("source_file", ""),
            file_format=data.get("file_format", "srt"),
            header=data.get("header", ""),
        )


# translate_batch(batch, target_language, translated_context) -> raw response text
TranslateBatchFn = Callable[[Batch, str, list[SubtitleEntry]], str]
ProgressCallback = Callable[[BatchProgress], None]
LogCallback = Callable[[LogEvent], None]
CheckpointCallback = Callable[[CheckpointState], None]


class BatchOrchestrator:
    """Drives batches through the translator strictly in order.

    Each batch receives the most recently translated entries as rolling
    context, so batches are never dispatched concurrently. Progress is
    checkpointed after every batch attempt, and a failed or cancelled run
    always checkpoints before the error propagates.
    """

    def __init__(
        self,
        translate_batch: TranslateBatchFn,
        config: Optional[TranslationConfig] = None,
        cancel_token: Optional[CancelToken] = None
    ):
        """Initialize the orchestrator.

        Args:
            translate_batch: Callable performing one external translation
                call and returning the raw response text.
            config: Translation configuration. Uses defaults if not provided.
            cancel_token: Cancellation signal observed at every suspension.
        """
        self.translate_batch = translate_batch
        self.config = config or TranslationConfig()
        self.cancel_token = cancel_token or CancelToken()

    def run(
        self,
        entries: Sequence[SubtitleEntry],
        target_language: Optional[str] = None,
        batch_size: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        log_callback: Optional[LogCallback] = None,
        checkpoint_callback: Optional[CheckpointCallback] = None,
        resume_from: int = 0,
        resume_entries: Optional[Sequence[SubtitleEntry]] = None
    ) -> list[SubtitleEntry]:
        """Translate all entries batch by batch.

        Args:
            entries: Full source entries in file order.
            target_language: Target language code. Uses config default if not provided.
            batch_size: Entries per batch. Uses config default if not provided.
            progress_callback: Receives a BatchProgress at every status change.
            log_callback: Receives a LogEvent for requests, responses,
                waits and errors.
            checkpoint_callback: Receives a CheckpointState after every
                batch attempt, successful or not.
            resume_from: Index of the first batch to translate.
            resume_entries: Translated entries of batches before
                ``resume_from``.

        Returns:
            Translated entries, one per source entry, in order.

        Raises:
            ValueError: If the resume point does not match the segmentation.
            TranslationCancelled: If the run was cancelled.
            TranslationError: Terminal provider failure.
        """
        config = self.config
        target_language = target_language or config.target_language
        size = clamp_batch_size(batch_size or config.batch_size)
        batches = segment(entries, size, config.context_window)
        total_batches = len(batches)
        total_entries = len(entries)
        original_entries = list(entries)

        if resume_from < 0 or resume_from > total_batches:
            raise ValueError(
                f"Cannot resume from batch {resume_from}: run has {total_batches} batches"
            )

        result = list(resume_entries or [])
        expected = sum(len(batch) for batch in batches[:resume_from])
        if len(result) != expected:
            raise ValueError(
                f"Resume data has {len(result)} entries, expected {expected} "
                f"for {resume_from} completed batches"
            )

        start_time = time.time()

        def report(completed: int, status: str) -> None:
            if progress_callback:
                progress_callback(BatchProgress(
                    completed_batches=completed,
                    total_batches=total_batches,
                    completed_entries=len(result),
                    total_entries=total_entries,
                    status=status,
                    elapsed_seconds=time.time() - start_time
                ))

        def log(event_type: LogEventType, message: str,
                details: Optional[str] = None, label: Optional[str] = None) -> None:
            if log_callback:
                log_callback(LogEvent(event_type, message, details, label))

        def checkpoint(completed: int, failed: bool) -> None:
            if checkpoint_callback:
                checkpoint_callback(CheckpointState(
                    completed_batches=completed,
                    total_batches=total_batches,
                    total_entries=total_entries,
                    translated_entries=list(result),
                    original_entries=original_entries,
                    target_language=target_language,
                    batch_size=size,
                    failed=failed
                ))

        if resume_from > 0:
            logger.info(f"Resuming at batch {resume_from + 1}/{total_batches}")
            log(
                LogEventType.RESPONSE,
                f"Resuming from batch {resume_from + 1}",
                f"{len(result)} subtitles already translated"
            )
        else:
            log(
                LogEventType.REQUEST,
                f"Starting translation: {total_entries} subtitles in {total_batches} batches",
                f"Target language: {config.get_language_name(target_language)}\nBatch size: {size}"
            )

        completed = resume_from
        for batch in batches[resume_from:]:
            label = f"{batch.index + 1}/{total_batches}"

            try:
                self.cancel_token.raise_if_cancelled()
                translated = self._translate_one(
                    batch, total_batches, target_language, result, report, log
                )
            except Exception as e:
                logger.error(f"Batch {label} failed: {e}")
                log(LogEventType.ERROR, f"Batch {label} failed", str(e), label)
                checkpoint(completed, failed=True)
                raise

            result.extend(translated)
            completed = batch.index + 1
            checkpoint(completed, failed=False)
            report(completed, f"Completed batch {completed} of {total_batches}")

            if completed < total_batches:
                report(completed, "Waiting before next batch...")
                if self.cancel_token.wait(config.batch_delay):
                    log(LogEventType.ERROR, "Translation cancelled", None, label)
                    checkpoint(completed, failed=True)
                    raise TranslationCancelled()

        report(total_batches, "Translation complete")
        log(
            LogEventType.RESPONSE,
            "Translation complete!",
            f"Successfully translated {total_entries} subtitles"
        )
        return result

    def _translate_one(
        self,
        batch: Batch,
        total_batches: int,
        target_language: str,
        result: list[SubtitleEntry],
        report: Callable[[int, str], None],
        log: Callable[..., None]
    ) -> list[SubtitleEntry]:
        """Translate one batch through the retry controller and reconcile it."""
        config = self.config
        label = f"{batch.index + 1}/{total_batches}"
        window = config.context_window
        rolling_context = result[-window:] if window > 0 else []

        report(batch.index, f"Translating batch {batch.index + 1} of {total_batches}...")
        log(
            LogEventType.REQUEST,
            f"Sending {len(batch)} subtitles for translation",
            _sample(batch.entries),
            label
        )

        def on_waiting(delay: float, attempt: int, max_retries: int) -> None:
            report(batch.index, f"Rate limited. Waiting {delay:.0f}s... (retry {attempt}/{max_retries})")
            log(
                LogEventType.WAITING,
                f"Rate limited - waiting {delay:.0f}s (attempt {attempt}/{max_retries})",
                None,
                label
            )

        try:
            raw = call_with_retry(
                lambda: self.translate_batch(batch, target_language, list(rolling_context)),
                max_retries=config.max_retries,
                cancel_token=self.cancel_token,
                on_waiting=on_waiting,
                base_delay=config.retry_base_delay,
                max_jitter=config.retry_max_jitter
            )
        except TranslationCancelled:
            raise
        except Exception as e:
            if is_retryable(e):
                raise ProviderUnavailable(
                    f"Batch {label} still failing after {config.max_retries} retries: {e}"
                ) from e
            raise

        translated = reconcile(raw, batch.entries)
        logger.debug(f"Batch {label}: reconciled {len(translated)} entries")
        log(
            LogEventType.RESPONSE,
            f"Received {len(translated)} translated subtitles",
            _sample(translated),
            label
        )
        return translated


def _sample(entries: Sequence[SubtitleEntry]) -> str:
    return "\n".join(f"[{e.index}] {e.text}" for e in entries[:LOG_SAMPLE_SIZE])
