"""
Test label filtering of raw recognition tags.
"""
import pytest

from ingredient_pipeline.label_filter import (
    DEFAULT_DENYLIST,
    LabelFilter,
    filter_labels,
    is_latin_text,
)


class TestLatinScript:
    """Non-Latin scripts never reach the reference search."""

    @pytest.mark.parametrize("tag", ["番茄", "洋葱", "トマト", "토마토", "طماطم", "молоко", "tomato 番茄"])
    def test_non_latin_rejected(self, tag):
        assert not is_latin_text(tag)

    @pytest.mark.parametrize("tag", ["tomato", "olive oil", "jalapeño", "crème fraîche", "half-and-half", "7up"])
    def test_latin_accepted(self, tag):
        assert is_latin_text(tag)

    def test_symbols_outside_allowance_rejected(self):
        assert not is_latin_text("tomato #1")
        assert not is_latin_text("")

    def test_mixed_language_tags(self):
        """Only the English tag survives a mixed CJK/English tag list."""
        assert LabelFilter()(["番茄", "tomato", "洋葱"]) == ["tomato"]


class TestLabelFilter:
    """Denylist, minimum length and normalization."""

    def test_normalizes_and_deduplicates(self):
        labels = ["Tomato", " tomato ", "TOMATO", "  Olive   Oil "]
        assert LabelFilter()(labels) == ["tomato", "olive oil"]

    def test_first_occurrence_order_preserved(self):
        assert LabelFilter()(["onion", "garlic", "Onion", "basil"]) == ["onion", "garlic", "basil"]

    @pytest.mark.parametrize("tag", ["bowl", "Plate", "food", "cutting board", "KITCHEN"])
    def test_denylisted_terms_rejected(self, tag):
        assert LabelFilter()([tag]) == []

    def test_denylist_is_whole_label(self):
        """Denylisted words inside a longer label do not reject it."""
        assert LabelFilter()(["fish sauce"]) == ["fish sauce"]

    def test_short_labels_rejected(self):
        assert LabelFilter()(["ox", "a", "egg"]) == ["egg"]

    def test_custom_denylist_replaces_default(self):
        label_filter = LabelFilter(denylist=["random gadget"])
        assert label_filter(["random gadget", "bowl"]) == ["bowl"]

    def test_split_reports_rejected_tags(self):
        kept, rejected = LabelFilter().split(["番茄", "tomato", "bowl", "ox"])
        assert kept == ["tomato"]
        assert rejected == ["番茄", "bowl", "ox"]

    @pytest.mark.parametrize("tag, reason", [
        ("番茄", "non_latin"),
        ("ox", "too_short"),
        ("bowl", "denylisted"),
        ("tomato", None),
    ])
    def test_rejection_reason(self, tag, reason):
        assert LabelFilter().rejection_reason(tag) == reason

    def test_all_rejected_yields_empty(self):
        """Filtering everything out is a valid result, not an error."""
        assert LabelFilter()(["bowl", "洋葱", "table"]) == []

    def test_none_entries_skipped(self):
        assert LabelFilter()([None, "tomato"]) == ["tomato"]

    def test_non_text_entries_skipped(self):
        kept, rejected = LabelFilter().split([42, None, 3.5, b"kale", "tomato"])
        assert kept == ["tomato"]
        assert rejected == []

    def test_filter_labels_uses_defaults(self):
        assert "bowl" in DEFAULT_DENYLIST
        assert filter_labels(["bowl", "Tomato"]) == ["tomato"]
