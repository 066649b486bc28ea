"""Processing package for text cleanup and extractive summarization."""

from .text_normalizer import clean, normalize_word, tokenize, extract_keywords, PORTUGUESE_STOPWORDS
from .summarizer import ExtractiveSummarizer, summarize

__all__ = [
    'clean',
    'normalize_word',
    'tokenize',
    'extract_keywords',
    'PORTUGUESE_STOPWORDS',
    'ExtractiveSummarizer',
    'summarize',
]
