"""Data models for subtitle entries and files."""

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class SubtitleEntry:
    """A single subtitle cue.

    Attributes:
        index: 1-based cue number, stable across translation.
        start_time: Start timestamp exactly as it appeared in the source.
        end_time: End timestamp exactly as it appeared in the source.
        text: The cue text (may span several lines).
    """
    index: int
    start_time: str
    end_time: str
    text: str

    def with_text(self, text: str) -> "SubtitleEntry":
        """Return a copy carrying new text and the same index and timing."""
        return replace(self, text=text)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SubtitleEntry":
        return cls(
            index=int(data["index"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            text=data["text"],
        )


@dataclass
class SubtitleFile:
    """A parsed subtitle file.

    Attributes:
        format: "srt" or "vtt".
        header: VTT header block (empty for SRT).
        entries: Subtitle entries in file order.
    """
    format: str
    header: str = ""
    entries: list[SubtitleEntry] = field(default_factory=list)

    @property
    def extension(self) -> str:
        return ".vtt" if self.format == "vtt" else ".srt"
