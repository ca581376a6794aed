"""Tests for segmentation, context formatting and reconciliation."""

import math

import pytest

from subtranslator.subtitles import SubtitleEntry
from subtranslator.translation import format_context, reconcile, segment
from subtranslator.translation.batch import (
    clamp_batch_size,
    estimate_tokens,
    format_entries,
    get_batch_stats,
)

from helpers import make_entries


class TestSegment:
    """Tests for segment()."""

    @pytest.mark.parametrize("total,batch_size", [
        (1, 10), (10, 10), (11, 10), (95, 20), (250, 100), (37, 13),
    ])
    def test_partition_is_contiguous_and_exhaustive(self, total, batch_size):
        """Test batches cover every entry exactly once, in order."""
        entries = make_entries(total)
        batches = segment(entries, batch_size)

        assert len(batches) == math.ceil(total / batch_size)
        assert [b.index for b in batches] == list(range(len(batches)))
        assert batches[0].start_index == 0
        assert batches[-1].end_index == total
        for prev, nxt in zip(batches, batches[1:]):
            assert prev.end_index == nxt.start_index

        flattened = [e for b in batches for e in b.entries]
        assert flattened == entries

    def test_context_entries_precede_batch(self):
        """Test context is the up-to-3 originals right before each batch."""
        entries = make_entries(25)
        batches = segment(entries, 10)

        assert batches[0].context_entries == ()
        assert list(batches[1].context_entries) == entries[7:10]
        assert list(batches[2].context_entries) == entries[17:20]
        for batch in batches:
            assert len(batch.context_entries) == min(3, batch.start_index)
            assert not set(batch.context_entries) & set(batch.entries)

    def test_custom_context_window(self):
        """Test the context window size is honoured."""
        batches = segment(make_entries(30), 10, context_window=5)
        assert len(batches[1].context_entries) == 5

        batches = segment(make_entries(30), 10, context_window=0)
        assert batches[1].context_entries == ()

    def test_batch_size_is_clamped(self):
        """Test batch sizes outside [10, 100] are clamped."""
        assert len(segment(make_entries(30), 1)) == 3
        assert len(segment(make_entries(250), 500)) == 3
        assert clamp_batch_size(5) == 10
        assert clamp_batch_size(150) == 100
        assert clamp_batch_size(42) == 42

    def test_empty_input(self):
        """Test no entries yields no batches."""
        assert segment([], 50) == []

    def test_deterministic(self):
        """Test the same input always yields the same partition."""
        entries = make_entries(57)
        assert segment(entries, 20) == segment(entries, 20)


class TestFormatContext:
    """Tests for format_context()."""

    def test_empty_context(self):
        """Test empty context renders as an empty string."""
        assert format_context([], []) == ""

    def test_pairs_by_position(self):
        """Test originals are paired with translations by position."""
        originals = make_entries(2)
        translated = [e.with_text(f"T{e.index}") for e in originals]

        assert format_context(originals, translated) == (
            "Original: Line 1\nTranslation: T1\n\n"
            "Original: Line 2\nTranslation: T2"
        )

    def test_missing_translations(self):
        """Test positions without a translation show the original only."""
        originals = make_entries(3)
        translated = [originals[0].with_text("T1")]

        assert format_context(originals, translated) == (
            "Original: Line 1\nTranslation: T1\n\n"
            "Original: Line 2\n\n"
            "Original: Line 3"
        )


class TestReconcile:
    """Tests for reconcile()."""

    @pytest.fixture
    def originals(self):
        return [
            SubtitleEntry(1, "00:00:01,000", "00:00:02,000", "Hello"),
            SubtitleEntry(2, "00:00:03,000", "00:00:04,000", "World"),
        ]

    def test_well_formed_response(self, originals):
        """Test markers are stripped and timing preserved."""
        result = reconcile("[1]\nA\n---\n[2]\nB", originals)

        assert result == [originals[0].with_text("A"), originals[1].with_text("B")]

    def test_empty_response_falls_back_to_originals(self, originals):
        """Test an empty response keeps every original text."""
        assert reconcile("", originals) == originals

    def test_short_response_is_padded(self, originals):
        """Test missing segments keep the original text."""
        result = reconcile("[1]\nHola", originals)

        assert [e.text for e in result] == ["Hola", "World"]

    def test_extra_segments_are_dropped(self, originals):
        """Test surplus segments are discarded."""
        result = reconcile("[1]\nA\n---\n[2]\nB\n---\n[3]\nC", originals)
        assert [e.text for e in result] == ["A", "B"]

    def test_separator_variants(self, originals):
        """Test long dash lines with surrounding blank lines split entries."""
        result = reconcile("[1]\nA\n\n-----\n\n[2]\nB\n", originals)
        assert [e.text for e in result] == ["A", "B"]

    def test_segment_without_marker(self, originals):
        """Test a segment without a marker is used whole."""
        result = reconcile("  Hola mundo  \n---\n[2] Adiós", originals)
        assert [e.text for e in result] == ["Hola mundo", "Adiós"]

    def test_multiline_text(self, originals):
        """Test multi-line translations stay intact."""
        result = reconcile("[1]\nLine one\nLine two\n---\n[2]\nB", originals)
        assert result[0].text == "Line one\nLine two"

    def test_blank_middle_segment_keeps_position(self):
        """Test a blank segment between entries does not shift later ones."""
        originals = make_entries(3)
        result = reconcile("[1]\nA\n---\n\n---\n[3]\nC", originals)

        assert [e.text for e in result] == ["A", "Line 2", "C"]
        assert result[2].start_time == originals[2].start_time

    def test_blank_edge_segments_are_ignored(self):
        """Test stray separators at either end do not shift entries."""
        originals = make_entries(2)
        result = reconcile("---\n[1]\nA\n---\n[2]\nB\n---\n", originals)

        assert [e.text for e in result] == ["A", "B"]

    def test_dashes_inside_text_do_not_split(self, originals):
        """Test dashes that are not alone on a line are kept."""
        result = reconcile("[1]\nWait --- what?\n---\n[2]\nB", originals)
        assert [e.text for e in result] == ["Wait --- what?", "B"]

    @pytest.mark.parametrize("raw", [
        "", "---", "\n---\n---\n", "[", "[x]\n", "[1]", "garbage without separators",
        "[1]\nA\n---\n---\n---\n[2]\nB\n---\n[3]\nC\n---\n[4]\nD",
    ])
    def test_always_one_entry_per_original(self, originals, raw):
        """Test the output always matches the originals' identity fields."""
        result = reconcile(raw, originals)

        assert len(result) == len(originals)
        for translated, original in zip(result, originals):
            assert translated.index == original.index
            assert translated.start_time == original.start_time
            assert translated.end_time == original.end_time


class TestHelpers:
    """Tests for batch helpers."""

    def test_format_entries(self):
        """Test entries are rendered as marker blocks."""
        assert format_entries(make_entries(2)) == "[1]\nLine 1\n---\n[2]\nLine 2"

    def test_estimate_tokens(self):
        """Test ~3 characters per token, rounded up."""
        assert estimate_tokens("") == 0
        assert estimate_tokens("abc") == 1
        assert estimate_tokens("abcd") == 2

    def test_batch_stats(self):
        """Test statistics over a segmentation."""
        stats = get_batch_stats(segment(make_entries(25), 10))

        assert stats.total_batches == 3
        assert stats.total_entries == 25
        assert stats.avg_entries_per_batch == 8
        assert stats.estimated_tokens > 0

    def test_batch_stats_empty(self):
        """Test statistics for no batches."""
        stats = get_batch_stats([])
        assert stats.total_batches == 0
        assert stats.avg_entries_per_batch == 0
