"""Tests for the SRT/VTT subtitle parser."""

from pathlib import Path

import pytest

from subtranslator.subtitles import SubtitleEntry, SubtitleFile, SubtitleParser


SRT_CONTENT = """1
00:00:01,000 --> 00:00:03,500
Hello there.

2
00:00:04,000 --> 00:00:06,000
How are you?
I'm fine.

3
00:00:07,000 --> 00:00:08,000
Goodbye.
"""

VTT_CONTENT = """WEBVTT
Kind: captions
Language: en

intro
00:01.000 --> 00:03.500
Welcome back.

00:00:04.000 --> 00:00:06.000
No identifier here.

7
00:00:07.000 --> 00:00:08.000
Numbered cue.
"""


class TestSubtitleEntry:
    """Tests for SubtitleEntry dataclass."""

    def test_with_text_keeps_identity(self):
        """Test only the text changes."""
        entry = SubtitleEntry(3, "00:00:01,000", "00:00:02,000", "Hello")
        translated = entry.with_text("Hola")

        assert translated.text == "Hola"
        assert translated.index == 3
        assert translated.start_time == "00:00:01,000"
        assert translated.end_time == "00:00:02,000"
        assert entry.text == "Hello"

    def test_dict_conversion(self):
        """Test to_dict/from_dict preserve all fields."""
        entry = SubtitleEntry(1, "00:00:01,000", "00:00:02,000", "Two\nlines")
        assert SubtitleEntry.from_dict(entry.to_dict()) == entry


class TestSubtitleParser:
    """Tests for SubtitleParser."""

    @pytest.fixture
    def parser(self):
        """Create parser instance."""
        return SubtitleParser()

    def test_detect_format(self, parser):
        """Test format detection."""
        assert parser.detect_format("  WEBVTT\n\n") == "vtt"
        assert parser.detect_format(SRT_CONTENT) == "srt"

    def test_parse_srt(self, parser):
        """Test basic SRT parsing."""
        subtitle = parser.parse(SRT_CONTENT)

        assert subtitle.format == "srt"
        assert subtitle.header == ""
        assert len(subtitle.entries) == 3
        assert subtitle.entries[0] == SubtitleEntry(1, "00:00:01,000", "00:00:03,500", "Hello there.")
        assert subtitle.entries[1].text == "How are you?\nI'm fine."

    def test_parse_srt_crlf(self, parser):
        """Test Windows line endings are normalized."""
        subtitle = parser.parse(SRT_CONTENT.replace("\n", "\r\n"))
        assert len(subtitle.entries) == 3
        assert subtitle.entries[1].text == "How are you?\nI'm fine."

    def test_parse_srt_skips_malformed_blocks(self, parser):
        """Test blocks without index or timestamp are skipped."""
        content = (
            "x\n00:00:01,000 --> 00:00:02,000\nBad index\n\n"
            "2\nnot a timestamp\nBad time\n\n"
            "3\n00:00:05,000 --> 00:00:06,000\nGood\n\n"
            "4\n00:00:07,000 --> 00:00:08,000\n"
        )
        subtitle = parser.parse(content)

        assert [e.index for e in subtitle.entries] == [3]

    def test_parse_vtt(self, parser):
        """Test VTT parsing with header and cue identifiers."""
        subtitle = parser.parse(VTT_CONTENT)

        assert subtitle.format == "vtt"
        assert subtitle.header == "WEBVTT\nKind: captions\nLanguage: en"
        assert len(subtitle.entries) == 3

        first, second, third = subtitle.entries
        assert first.index == 1  # non-numeric id falls back to the counter
        assert first.start_time == "00:01.000"
        assert first.text == "Welcome back."
        assert second.index == 2
        assert second.text == "No identifier here."
        assert third.index == 7

    def test_parse_empty(self, parser):
        """Test empty content yields no entries."""
        assert parser.parse("").entries == []

    def test_format_srt_uses_commas(self, parser):
        """Test SRT output uses comma millisecond separators."""
        entries = [SubtitleEntry(1, "00:00:01.000", "00:00:02.000", "Hi")]
        assert parser.format_srt(entries) == "1\n00:00:01,000 --> 00:00:02,000\nHi\n"

    def test_format_vtt_uses_periods(self, parser):
        """Test VTT output uses period separators and keeps the header."""
        subtitle = SubtitleFile(
            format="vtt",
            header="WEBVTT\nKind: captions",
            entries=[SubtitleEntry(1, "00:00:01,000", "00:00:02,000", "Hi")]
        )
        assert parser.format(subtitle) == (
            "WEBVTT\nKind: captions\n\n1\n00:00:01.000 --> 00:00:02.000\nHi\n"
        )

    def test_write_and_parse_file(self, parser, tmp_path):
        """Test writing then reading a file gives the same entries."""
        original = parser.parse(SRT_CONTENT)
        path = tmp_path / "out" / "movie.srt"

        parser.write(original, path)
        reloaded = parser.parse_file(path)

        assert reloaded.entries == original.entries

    def test_parse_file_with_bom(self, parser, tmp_path):
        """Test a UTF-8 BOM does not break format detection."""
        path = tmp_path / "movie.vtt"
        path.write_bytes(b"\xef\xbb\xbf" + VTT_CONTENT.encode("utf-8"))

        subtitle = parser.parse_file(path)

        assert subtitle.format == "vtt"
        assert len(subtitle.entries) == 3
