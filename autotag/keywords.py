"""
Built-in keyword extraction using word frequency.

The ranker strips markup, lower-cases the text, counts word occurrences and
returns the most frequent words that are neither stop words nor shorter than
``MIN_KEYWORD_LENGTH``. Words with equal counts keep the order in which they
first appeared in the text.
"""

import re
import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from .config import ExtractionConfig, ExtractionMethod
from .constants import MAX_SUGGESTED_TAGS, MIN_KEYWORD_LENGTH
from .plugins import TagExtractor, PluginMetadata, PluginPriority

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    'the', 'and', 'that', 'have', 'for', 'not', 'with', 'you',
    'this', 'but', 'his', 'from', 'they', 'she', 'which', 'there',
    'were', 'been', 'their', 'what', 'when', 'your', 'can', 'said',
    'who', 'will', 'would', 'all', 'each', 'about', 'other', 'into',
    'more', 'some', 'could', 'them', 'these', 'than', 'then', 'now',
    'look', 'only', 'come', 'its', 'over', 'think', 'also', 'back',
    'after', 'use', 'two', 'how', 'our', 'work', 'first', 'well',
    'way', 'even', 'new', 'want', 'because', 'any', 'give',
    'most', 'us', 'are', 'was', 'is', 'on', 'in', 'it', 'of',
    'a', 'to', 'as', 'at', 'by', 'an',
})

_WORD_RE = re.compile(r'\w+')


def strip_markup(content: str) -> str:
    """
    Remove markup tags, keeping only their text.

    Text on either side of a tag is joined without a separator, so
    ``"<b>key</b>word"`` becomes ``"keyword"``. Entities are decoded.
    """
    if not content:
        return ""
    if '<' not in content and '&' not in content:
        return content
    return BeautifulSoup(content, 'html.parser').get_text()


def tokenize(text: str) -> List[str]:
    """Split lower-cased text into word tokens."""
    return _WORD_RE.findall(text.lower())


def count_frequencies(tokens: List[str]) -> Dict[str, int]:
    """Count tokens, keyed in order of first appearance."""
    frequency: Dict[str, int] = {}
    for token in tokens:
        frequency[token] = frequency.get(token, 0) + 1
    return frequency


def is_candidate(word: str) -> bool:
    """Whether a lower-cased word may become a tag."""
    return len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS


def rank(content: str, limit: int = MAX_SUGGESTED_TAGS) -> List[str]:
    """
    Rank the keywords of a piece of content by frequency.

    Args:
        content: Raw text, possibly containing markup
        limit: Maximum number of keywords to return

    Returns:
        Up to ``limit`` distinct keywords, most frequent first. Ties keep
        first-appearance order. Empty when nothing qualifies.
    """
    frequency = count_frequencies(tokenize(strip_markup(content)))
    candidates = [(word, count) for word, count in frequency.items() if is_candidate(word)]

    # sorted() is stable, so equal counts keep first-appearance order
    candidates = sorted(candidates, key=lambda item: -item[1])

    return [word for word, _ in candidates[:limit]]


class BuiltinExtractor(TagExtractor):
    """Tag extractor using local word-frequency ranking."""

    def __init__(self, limit: int = MAX_SUGGESTED_TAGS):
        self.limit = limit
        self._metadata = PluginMetadata(
            name=ExtractionMethod.BUILTIN.value,
            version="1.0.0",
            author="autotag",
            description="Frequency-ranked keywords with stop-word filtering",
            priority=PluginPriority.NORMAL.value
        )

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    @property
    def method(self) -> ExtractionMethod:
        return ExtractionMethod.BUILTIN

    def extract(self, content: str, config: Optional[ExtractionConfig] = None) -> List[str]:
        tags = rank(content, limit=self.limit)
        logger.debug(f"Built-in extraction found {len(tags)} keywords")
        return tags
