"""
Label filtering for raw recognition tags.

The recognition service returns multilingual, noisy tags ("番茄", "tomato",
"bowl", "Tomato "). Only Latin-script, food-plausible labels survive:

- non-Latin script tokens are dropped (CJK, Hangul, Kana, Arabic, Cyrillic)
- denylisted generic / non-food object words are dropped
- tokens shorter than `min_length` are dropped
- survivors are lowercased, trimmed and deduplicated, first occurrence wins
"""
import logging
import re
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Generic or non-food terms the vision model emits alongside ingredients
DEFAULT_DENYLIST: Tuple[str, ...] = (
    # Generic food words (too vague to match)
    "food", "fruit", "vegetable", "meat", "fish", "dairy", "grain",
    "ingredient", "mixture", "produce", "dish", "meal", "snack",
    # Containers and utensils
    "container", "box", "bin", "bowl", "plate", "cup", "spoon", "fork",
    "knife", "whisk", "table", "tray", "jar", "bottle", "glass", "mug",
    "pan", "pot", "cutting board", "napkin", "kitchen", "countertop",
    # Scene / background
    "background", "surface", "wood", "white", "close-up", "person", "hand",
)

DEFAULT_MIN_LENGTH = 3

# Scripts that are never valid reference-search queries
NON_LATIN_PATTERN = re.compile(
    r"[\u3040-\u309f"     # Hiragana
    r"\u30a0-\u30ff"      # Katakana
    r"\u3400-\u4dbf"      # CJK extension A
    r"\u4e00-\u9fff"      # CJK unified ideographs
    r"\uac00-\ud7af"      # Hangul syllables
    r"\u0600-\u06ff"      # Arabic
    r"\u0400-\u04ff]"     # Cyrillic
)

# Latin letters (incl. accented), digits, whitespace and basic punctuation
LATIN_TEXT_PATTERN = re.compile(r"^[A-Za-z\u00c0-\u024f0-9\s\-'.,!?&()]+$")


def is_latin_text(text: str) -> bool:
    """
    Check that a tag is written in Latin script.

    Args:
        text: Raw tag

    Returns:
        True if the tag only uses Latin letters, digits and basic punctuation
    """
    if not text or NON_LATIN_PATTERN.search(text):
        return False
    return bool(LATIN_TEXT_PATTERN.match(text))


class LabelFilter:
    """Normalizes and filters raw recognition tags into search queries."""

    def __init__(
        self,
        denylist: Optional[Iterable[str]] = None,
        min_length: int = DEFAULT_MIN_LENGTH,
    ):
        """
        Args:
            denylist: Words to reject (case-insensitive). Defaults to DEFAULT_DENYLIST.
            min_length: Minimum normalized label length
        """
        terms = DEFAULT_DENYLIST if denylist is None else denylist
        self.denylist = {self.normalize(t) for t in terms}
        self.min_length = min_length

    @staticmethod
    def normalize(label: str) -> str:
        return " ".join(label.lower().split())

    def rejection_reason(self, label: str) -> Optional[str]:
        """Why a label is rejected, or None if it is kept."""
        if not is_latin_text(label):
            return "non_latin"
        normalized = self.normalize(label)
        if len(normalized) < self.min_length:
            return "too_short"
        if normalized in self.denylist:
            return "denylisted"
        return None

    def split(self, labels: Iterable[str]) -> Tuple[List[str], List[str]]:
        """
        Partition raw tags into kept queries and rejected tags.

        Args:
            labels: Raw recognition tags, in recognition order

        Returns:
            Tuple of (distinct normalized queries, rejected raw tags)
        """
        kept: List[str] = []
        rejected: List[str] = []
        seen = set()

        for label in labels:
            if not isinstance(label, str):
                if label is not None:
                    logger.debug(f"[FILTER] Skipped non-text label {label!r}")
                continue
            reason = self.rejection_reason(label)
            if reason:
                logger.debug(f"[FILTER] Rejected '{label}' ({reason})")
                rejected.append(label)
                continue
            normalized = self.normalize(label)
            if normalized in seen:
                continue
            seen.add(normalized)
            kept.append(normalized)

        logger.info(
            f"[FILTER] Kept {len(kept)} labels, rejected {len(rejected)}"
        )
        return kept, rejected

    def __call__(self, labels: Iterable[str]) -> List[str]:
        return self.split(labels)[0]


def filter_labels(labels: Iterable[str], denylist: Optional[Iterable[str]] = None) -> List[str]:
    """Convenience wrapper around LabelFilter with default settings."""
    return LabelFilter(denylist=denylist)(labels)


__all__ = ["DEFAULT_DENYLIST", "LabelFilter", "filter_labels", "is_latin_text"]
