"""Text cleanup and word normalization shared by the summarizer and image prompts."""

import re
import unicodedata
from typing import Iterable, List, Optional, Set

from bs4 import BeautifulSoup, Comment

from ..logger import get_logger

logger = get_logger()

_NON_WORD = re.compile(r"\W+")

# Blocks whose content is never article text
_DROPPED_TAGS = ["script", "style", "noscript"]


def normalize_word(token: str) -> str:
    """
    Lowercase a token and strip its diacritics.

    Accented and unaccented spellings land on the same key, so "ação" and
    "acao" are counted as one word.
    """
    if not token:
        return ""
    decomposed = unicodedata.normalize("NFD", token.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_RAW_STOPWORDS = [
    "de", "da", "do", "em", "para", "com", "que", "um", "uma", "uns", "umas",
    "os", "as", "e", "o", "a", "no", "na", "nos", "nas", "por", "se", "ao", "aos",
    "dos", "das", "é", "foi", "são", "ser", "tem", "há", "como", "mais", "menos",
    "já", "também", "entre", "sobre", "até", "após", "antes", "durante",
    "ou", "mas", "seu", "sua", "seus", "suas", "ele", "ela", "eles", "elas",
    "pelo", "pela", "pelos", "pelas", "isso", "isto", "este", "esta", "esse", "essa",
    "não", "muito", "quando", "onde", "ainda", "num", "numa", "lhe", "pois",
]

# Stored normalized so that "após" matches the token "apos"
PORTUGUESE_STOPWORDS: frozenset = frozenset(normalize_word(w) for w in _RAW_STOPWORDS)


def clean(html: Optional[str]) -> str:
    """
    Reduce an HTML document to its visible text.

    Script, style and noscript blocks are dropped with their content, as are
    comments and every remaining tag. Entities are decoded and whitespace runs
    collapse to single spaces.

    Args:
        html: Raw HTML (may be empty, None or malformed)

    Returns:
        Cleaned text, or an empty string when nothing usable remains
    """
    if not html or not isinstance(html, str):
        return ""

    try:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(_DROPPED_TAGS):
            tag.decompose()
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()
        text = soup.get_text(" ")
    except Exception as e:
        logger.warning(f"Failed to clean HTML ({len(html)} chars): {e}")
        return ""

    return " ".join(text.split())


def tokenize(text: str) -> List[str]:
    """Split text into normalized word tokens, dropping empty ones."""
    return [token for token in _NON_WORD.split(normalize_word(text)) if token]


def extract_keywords(
    text: str,
    limit: int = 8,
    stopwords: Iterable[str] = PORTUGUESE_STOPWORDS,
    min_length: int = 3
) -> List[str]:
    """
    Pick distinct content words from text in order of first appearance.

    Args:
        text: Source text (a headline, usually)
        limit: Maximum number of keywords
        stopwords: Normalized words to skip
        min_length: Shortest token kept

    Returns:
        List of normalized keywords
    """
    stop: Set[str] = set(stopwords)
    keywords: List[str] = []
    for token in tokenize(text):
        if len(keywords) >= limit:
            break
        if token in stop or len(token) < min_length or token.isdigit() or token in keywords:
            continue
        keywords.append(token)
    return keywords
