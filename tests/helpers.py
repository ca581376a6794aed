"""Builders and translate stubs shared by the test modules."""

from subtranslator.subtitles import SubtitleEntry


def make_entries(count: int, start: int = 1) -> list[SubtitleEntry]:
    """Build ``count`` sequential entries with distinct text."""
    return [
        SubtitleEntry(
            index=i,
            start_time=f"00:{i // 60:02d}:{i % 60:02d},000",
            end_time=f"00:{i // 60:02d}:{i % 60:02d},900",
            text=f"Line {i}"
        )
        for i in range(start, start + count)
    ]


def echo_translation(batch, target_language, translated_context) -> str:
    """Deterministic translate stub producing a well-formed response."""
    return "\n---\n".join(f"[{e.index}]\n{target_language}:{e.text}" for e in batch.entries)
