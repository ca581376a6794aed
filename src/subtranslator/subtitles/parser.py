"""Parser and writer for SRT and WebVTT subtitle files."""

import re
from pathlib import Path
from typing import Optional

from .models import SubtitleEntry, SubtitleFile


class SubtitleParser:
    """Parser for SRT and WebVTT subtitle files.

    Normalizes line endings, skips malformed cues and keeps timestamps
    as opaque strings so they survive translation untouched.
    """

    SRT_TIMESTAMP_PATTERN = re.compile(
        r'(\d{2}:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}[,.]\d{3})'
    )

    VTT_TIMESTAMP_PATTERN = re.compile(
        r'(\d{2}:\d{2}:\d{2}\.\d{3}|\d{2}:\d{2}\.\d{3})\s*-->\s*'
        r'(\d{2}:\d{2}:\d{2}\.\d{3}|\d{2}:\d{2}\.\d{3})'
    )

    BLOCK_SEPARATOR = re.compile(r'\n\n+')

    @staticmethod
    def detect_format(content: str) -> str:
        """Detect whether content is WebVTT or SRT.

        Args:
            content: Raw subtitle file content.

        Returns:
            "vtt" if the content starts with a WEBVTT header, else "srt".
        """
        return "vtt" if content.strip().startswith("WEBVTT") else "srt"

    def parse(self, content: str) -> SubtitleFile:
        """Parse subtitle content, auto-detecting the format.

        Args:
            content: Raw subtitle file content.

        Returns:
            SubtitleFile with the parsed entries.
        """
        content = self._normalize(content)
        if self.detect_format(content) == "vtt":
            return self.parse_vtt(content)
        return self.parse_srt(content)

    def parse_srt(self, content: str) -> SubtitleFile:
        """Parse SRT content.

        Args:
            content: Raw SRT content.

        Returns:
            SubtitleFile in "srt" format.
        """
        entries = []
        content = self._normalize(content)

        for block in self.BLOCK_SEPARATOR.split(content.strip()):
            lines = block.strip().split('\n')
            if len(lines) < 3:
                continue

            try:
                index = int(lines[0].strip())
            except ValueError:
                continue

            timestamp_match = self.SRT_TIMESTAMP_PATTERN.search(lines[1].strip())
            if not timestamp_match:
                continue

            entries.append(SubtitleEntry(
                index=index,
                start_time=timestamp_match.group(1),
                end_time=timestamp_match.group(2),
                text='\n'.join(lines[2:])
            ))

        return SubtitleFile(format="srt", header="", entries=entries)

    def parse_vtt(self, content: str) -> SubtitleFile:
        """Parse WebVTT content.

        Cue identifiers that are numeric become the entry index; otherwise
        cues are numbered sequentially.

        Args:
            content: Raw VTT content.

        Returns:
            SubtitleFile in "vtt" format.
        """
        entries = []
        content = self._normalize(content)
        blocks = self.BLOCK_SEPARATOR.split(content)

        header = ""
        start = 0
        if blocks and blocks[0].strip().startswith("WEBVTT"):
            header = blocks[0].strip()
            start = 1

        cue_number = 1
        for block in blocks[start:]:
            block = block.strip()
            if not block:
                continue

            lines = block.split('\n')
            cue_id: Optional[str] = None
            timestamp_line = 0

            # A first line without an arrow is a cue identifier
            if '-->' not in lines[0]:
                cue_id = lines[0].strip()
                timestamp_line = 1

            if timestamp_line >= len(lines):
                continue

            timestamp_match = self.VTT_TIMESTAMP_PATTERN.search(lines[timestamp_line])
            if not timestamp_match:
                continue

            index = cue_number
            if cue_id is not None and cue_id.isdigit():
                index = int(cue_id) or cue_number

            entries.append(SubtitleEntry(
                index=index,
                start_time=timestamp_match.group(1),
                end_time=timestamp_match.group(2),
                text='\n'.join(lines[timestamp_line + 1:])
            ))
            cue_number += 1

        return SubtitleFile(format="vtt", header=header or "WEBVTT", entries=entries)

    def parse_file(self, path: Path) -> SubtitleFile:
        """Parse a subtitle file from disk.

        Args:
            path: Path to the .srt or .vtt file.

        Returns:
            Parsed SubtitleFile.
        """
        return self.parse(self._read_file(path))

    def format(self, subtitle: SubtitleFile) -> str:
        """Render a SubtitleFile back to text.

        Args:
            subtitle: The subtitle file to render.

        Returns:
            SRT or VTT content.
        """
        if subtitle.format == "vtt":
            return self.format_vtt(subtitle.entries, subtitle.header or "WEBVTT")
        return self.format_srt(subtitle.entries)

    def format_srt(self, entries: list[SubtitleEntry]) -> str:
        """Render entries as SRT, using comma millisecond separators."""
        blocks = []
        for i, entry in enumerate(entries, 1):
            index = entry.index or i
            start = entry.start_time.replace('.', ',')
            end = entry.end_time.replace('.', ',')
            blocks.append(f"{index}\n{start} --> {end}\n{entry.text}")
        return '\n\n'.join(blocks) + '\n'

    def format_vtt(self, entries: list[SubtitleEntry], header: str = "WEBVTT") -> str:
        """Render entries as WebVTT, using period millisecond separators."""
        blocks = []
        for i, entry in enumerate(entries, 1):
            index = entry.index or i
            start = entry.start_time.replace(',', '.')
            end = entry.end_time.replace(',', '.')
            blocks.append(f"{index}\n{start} --> {end}\n{entry.text}")
        return f"{header}\n\n" + '\n\n'.join(blocks) + '\n'

    def write(self, subtitle: SubtitleFile, path: Path) -> None:
        """Write a SubtitleFile to disk as UTF-8.

        Args:
            subtitle: The subtitle file to write.
            path: Path to the output file.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.format(subtitle), encoding='utf-8')

    def _read_file(self, path: Path) -> str:
        """Read a subtitle file, tolerating a UTF-8 BOM and legacy encodings.

        Args:
            path: Path to the file.

        Returns:
            File content as string.
        """
        raw = path.read_bytes()

        # UTF-16 BOM
        if raw.startswith(b'\xff\xfe') or raw.startswith(b'\xfe\xff'):
            return raw.decode('utf-16')

        try:
            return raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            return raw.decode('latin-1')

    @staticmethod
    def _normalize(content: str) -> str:
        return content.replace('\r\n', '\n').replace('\r', '\n')
