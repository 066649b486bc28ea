"""Extractive summarization by word-frequency sentence ranking."""

import re
from typing import Dict, Iterable, List, Optional

from ..config import SummaryConfig
from ..logger import get_logger
from ..models import SentenceScore
from .text_normalizer import PORTUGUESE_STOPWORDS, clean, tokenize

# Boundary is the whitespace after terminal punctuation; the mark stays with its sentence
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_TERMINAL_PUNCTUATION = (".", "!", "?")


class ExtractiveSummarizer:
    """Builds short summaries out of the most representative sentences of a text."""

    def __init__(self, config: Optional[SummaryConfig] = None, stopwords: Iterable[str] = PORTUGUESE_STOPWORDS):
        """
        Initialize extractive summarizer.

        Args:
            config: Thresholds and budgets (defaults to SummaryConfig())
            stopwords: Normalized words excluded from frequency counting
        """
        self.config = config or SummaryConfig()
        self.stopwords = frozenset(stopwords)
        self.logger = get_logger()

    def summarize(self, text: Optional[str], max_sentences: Optional[int] = None) -> str:
        """
        Summarize plain text into at most ``max_sentences`` sentences.

        Args:
            text: Cleaned article text
            max_sentences: Number of sentences to keep (defaults to config.max_sentences)

        Returns:
            Summary ending in terminal punctuation, or the "unavailable" sentinel
        """
        if max_sentences is None:
            max_sentences = self.config.max_sentences
        max_sentences = max(1, max_sentences)

        if not text or not text.strip():
            return self.config.unavailable_text

        excerpt = text[:self.config.max_input_chars]
        fragments = self.split_sentences(excerpt)
        sentences = [s for s in fragments if len(s) >= self.config.min_sentence_length]

        if not sentences:
            # Nothing long enough to rank; keep the leading fragments instead
            self.logger.debug("No sentence passed the length filter, using leading fragments")
            return self._finish(fragments[:max_sentences])

        if len(sentences) <= max_sentences:
            return self._finish(sentences)

        frequencies = self.build_frequency_table(sentences)
        scored = [self.score_sentence(s, idx, frequencies) for idx, s in enumerate(sentences)]

        # sorted() is stable, so equal scores keep document order
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)[:max_sentences]
        selected = sorted(ranked, key=lambda s: s.original_index)

        self.logger.debug(
            f"Selected sentences {[s.original_index for s in selected]} "
            f"out of {len(sentences)} ({len(frequencies)} distinct words)"
        )
        return self._finish([s.text for s in selected])

    def summarize_html(self, html: Optional[str], max_sentences: Optional[int] = None) -> str:
        """Clean raw HTML and summarize the resulting text."""
        return self.summarize(clean(html), max_sentences)

    @staticmethod
    def split_sentences(text: str) -> List[str]:
        return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]

    def build_frequency_table(self, sentences: List[str]) -> Dict[str, int]:
        """Count every non-stopword token across all sentences."""
        frequencies: Dict[str, int] = {}
        for sentence in sentences:
            for word in tokenize(sentence):
                if word in self.stopwords:
                    continue
                frequencies[word] = frequencies.get(word, 0) + 1
        return frequencies

    def score_sentence(self, sentence: str, index: int, frequencies: Dict[str, int]) -> SentenceScore:
        score = float(sum(frequencies.get(word, 0) for word in tokenize(sentence)))

        word_count = len(sentence.split())
        if self.config.readable_min_words <= word_count <= self.config.readable_max_words:
            score += self.config.readable_bonus

        return SentenceScore(text=sentence, original_index=index, score=score)

    def _finish(self, sentences: List[str]) -> str:
        summary = " ".join(sentences).strip()
        if not summary:
            return self.config.unavailable_text
        if not summary.endswith(_TERMINAL_PUNCTUATION):
            summary += "."
        return summary


def summarize(text: Optional[str], max_sentences: int = 3, config: Optional[SummaryConfig] = None) -> str:
    """Summarize text with a fresh ExtractiveSummarizer."""
    return ExtractiveSummarizer(config).summarize(text, max_sentences)
