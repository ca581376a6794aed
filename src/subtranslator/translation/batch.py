"""Batch segmentation, context rendering and response reconciliation."""

import math
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..config import MAX_BATCH_SIZE, MIN_BATCH_SIZE
from ..subtitles import SubtitleEntry

DEFAULT_CONTEXT_WINDOW = 3

# Formatting overhead per entry when estimating request size
ENTRY_TOKEN_OVERHEAD = 10

ENTRY_SEPARATOR = "\n---\n"

# A line made only of three or more dashes
SEPARATOR_PATTERN = re.compile(r'^[ \t]*-{3,}[ \t]*$', re.MULTILINE)

# "[12]" at the start of a segment, optionally followed by a newline
INDEX_MARKER_PATTERN = re.compile(r'^\[(\d+)\][ \t]*\n?(.*)$', re.DOTALL)


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of entries sent as one translation request.

    Attributes:
        index: 0-based position in the batch sequence.
        entries: Entries to translate.
        context_entries: Up to K original entries immediately preceding
            ``entries``, supplied for consistency only.
        start_index: Offset of the first entry in the full sequence.
        end_index: Offset one past the last entry in the full sequence.
    """
    index: int
    entries: tuple[SubtitleEntry, ...]
    context_entries: tuple[SubtitleEntry, ...] = field(default_factory=tuple)
    start_index: int = 0
    end_index: int = 0

    def __len__(self) -> int:
        return len(self.entries)


def clamp_batch_size(batch_size: int) -> int:
    """Clamp a requested batch size to the supported range."""
    return max(MIN_BATCH_SIZE, min(batch_size, MAX_BATCH_SIZE))


def segment(
    entries: Sequence[SubtitleEntry],
    batch_size: int,
    context_window: int = DEFAULT_CONTEXT_WINDOW
) -> list[Batch]:
    """Split entries into fixed-size batches with trailing context.

    Batches partition ``entries`` contiguously and in order. The batch size
    is clamped to [10, 100]; only the last batch may be shorter.

    Args:
        entries: All subtitle entries in file order.
        batch_size: Requested entries per batch.
        context_window: Number of preceding originals attached as context.

    Returns:
        List of batches, empty when there are no entries.
    """
    total = len(entries)
    if total == 0:
        return []

    size = clamp_batch_size(batch_size)
    window = max(0, context_window)
    batches = []

    for batch_index, start in enumerate(range(0, total, size)):
        end = min(start + size, total)
        context_start = max(0, start - window)
        batches.append(Batch(
            index=batch_index,
            entries=tuple(entries[start:end]),
            context_entries=tuple(entries[context_start:start]),
            start_index=start,
            end_index=end
        ))

    return batches


def format_context(
    context_entries: Sequence[SubtitleEntry],
    translated_context: Sequence[Optional[SubtitleEntry]] = ()
) -> str:
    """Render preceding originals and their translations as a context block.

    Entries are paired by position: both sequences cover the same span of
    the file, so ``translated_context[i]`` is the translation of
    ``context_entries[i]`` when present.

    Args:
        context_entries: Original entries preceding the batch.
        translated_context: Already-translated entries for the same span.

    Returns:
        Context text, or an empty string when there is no context.
    """
    if not context_entries:
        return ""

    pairs = []
    for i, entry in enumerate(context_entries):
        translation = translated_context[i] if i < len(translated_context) else None
        if translation is not None:
            pairs.append(f"Original: {entry.text}\nTranslation: {translation.text}")
        else:
            pairs.append(f"Original: {entry.text}")

    return "\n\n".join(pairs)


def format_entries(entries: Sequence[SubtitleEntry]) -> str:
    """Render entries as "[index]" blocks separated by dash lines."""
    return ENTRY_SEPARATOR.join(f"[{entry.index}]\n{entry.text}" for entry in entries)


def reconcile(
    raw_response: str,
    original_entries: Sequence[SubtitleEntry]
) -> list[SubtitleEntry]:
    """Align a raw translated response back to the original entries.

    The response is split on dash separator lines and matched to the
    originals by position. Blank segments at either end are ignored; blank
    segments in between still occupy their position. A leading "[n]" marker is stripped. Missing or
    blank segments keep the original text, and surplus segments are
    dropped, so the result always has one entry per original with the
    original index and timing.

    Args:
        raw_response: Unstructured text returned by the provider.
        original_entries: Entries that were sent for translation.

    Returns:
        Translated entries, exactly ``len(original_entries)`` of them.
    """
    segments = [
        part.strip()
        for part in SEPARATOR_PATTERN.split(raw_response or "")
    ]
    # Blank edges come from stray separators; blank middles hold a position
    while segments and not segments[0]:
        segments.pop(0)
    while segments and not segments[-1]:
        segments.pop()

    translated = []
    for i, original in enumerate(original_entries):
        text = _segment_text(segments[i]) if i < len(segments) else ""
        # Untranslated fallback keeps every entry in the output
        translated.append(original.with_text(text or original.text))

    return translated


def _segment_text(segment_text: str) -> str:
    """Extract the translation from one response segment."""
    match = INDEX_MARKER_PATTERN.match(segment_text)
    if match:
        return match.group(2).strip()
    return segment_text


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a text.

    Uses a conservative ~3 characters per token to account for
    multilingual content.

    Args:
        text: The text to estimate.

    Returns:
        Estimated token count.
    """
    return math.ceil(len(text) / 3)


def calculate_batch_tokens(entries: Sequence[SubtitleEntry]) -> int:
    """Estimate tokens needed to send a group of entries."""
    total = 0
    for entry in entries:
        total += estimate_tokens(f"{entry.start_time} --> {entry.end_time}")
        total += estimate_tokens(entry.text)
        total += ENTRY_TOKEN_OVERHEAD
    return total


@dataclass
class BatchStats:
    """Summary of a segmentation.

    Attributes:
        total_batches: Number of batches.
        total_entries: Number of entries across all batches.
        avg_entries_per_batch: Rounded mean batch size.
        estimated_tokens: Estimated tokens for entries plus context.
    """
    total_batches: int
    total_entries: int
    avg_entries_per_batch: int
    estimated_tokens: int


def get_batch_stats(batches: Sequence[Batch]) -> BatchStats:
    """Compute size statistics for a list of batches."""
    total_batches = len(batches)
    total_entries = sum(len(batch.entries) for batch in batches)
    avg = round(total_entries / total_batches) if total_batches else 0

    estimated = 0
    for batch in batches:
        estimated += calculate_batch_tokens(batch.entries)
        estimated += calculate_batch_tokens(batch.context_entries)

    return BatchStats(
        total_batches=total_batches,
        total_entries=total_entries,
        avg_entries_per_batch=avg,
        estimated_tokens=estimated
    )
