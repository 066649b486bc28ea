"""Top headline selection over an ordered list of RSS/Atom feed sources."""

import asyncio
import re
import xml.sax
from typing import List, Optional, Protocol
from urllib.parse import urlparse

import feedparser
from bs4 import BeautifulSoup

from ..config import FeedKind, FeedSource
from ..exceptions import MemeDayError, ParseFailure, ValidationFailure
from ..logger import get_logger
from ..models import NewsItem

ABSOLUTE_URL = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
_BARE_URL = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)


class TextFetcher(Protocol):
    """Anything that can fetch a URL as text (FetchResolver, or a fake in tests)."""

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> str:
        ...


def is_absolute_url(link: str) -> bool:
    return bool(link) and bool(ABSOLUTE_URL.match(link))


def _host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def extract_original_link(description_html: str, aggregator_host: str) -> Optional[str]:
    """
    Find the publisher link embedded in an aggregator's HTML description.

    Anchors are scanned in document order first; if none points outside the
    aggregator, the raw markup is scanned for the first bare URL that does.

    Args:
        description_html: HTML fragment from the entry description
        aggregator_host: Host of the aggregator itself (e.g. "news.google.com")

    Returns:
        First absolute link on another host, or None
    """
    if not description_html:
        return None
    if "://" not in aggregator_host:
        aggregator_host = f"https://{aggregator_host}"
    aggregator_host = _host(aggregator_host)

    soup = BeautifulSoup(description_html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if is_absolute_url(href) and _host(href) != aggregator_host:
            return href

    for match in _BARE_URL.finditer(description_html):
        candidate = match.group(0).rstrip(".,;)")
        if is_absolute_url(candidate) and _host(candidate) != aggregator_host:
            return candidate
    return None


class FeedResolver:
    """Picks the top item of the first feed source that yields a valid one."""

    def __init__(self, sources: List[FeedSource], fetcher: TextFetcher, timeout: Optional[float] = None):
        """
        Initialize feed resolver.

        Args:
            sources: Feed sources in priority order
            fetcher: Fetch capability used to download feed documents
            timeout: Per-request timeout passed to the fetcher
        """
        self.sources = list(sources)
        self.fetcher = fetcher
        self.timeout = timeout
        self.logger = get_logger()

    @property
    def enabled_sources(self) -> List[FeedSource]:
        return [source for source in self.sources if source.enabled]

    def sources_for(self, query: Optional[str] = None) -> List[FeedSource]:
        """
        Enabled sources in the order they should be tried for this query.

        Search sources go first when a query is given and are left out when
        there is none, so a search URL is never requested with an empty query.
        """
        enabled = self.enabled_sources
        if not query:
            return [source for source in enabled if not source.uses_query]
        return (
            [source for source in enabled if source.uses_query]
            + [source for source in enabled if not source.uses_query]
        )

    async def resolve_top_item(self, query: Optional[str] = None) -> Optional[NewsItem]:
        """
        Try each source strictly in order and return the first valid top item.

        Args:
            query: Optional search query for sources with a templated endpoint

        Returns:
            NewsItem from the first source that succeeds, or None if all fail
        """
        for source in self.sources_for(query):
            try:
                item = await self.resolve_source(source, query)
            except MemeDayError as e:
                self.logger.warning(f"Feed source '{source.name}' skipped: {e}")
                continue
            except Exception as e:
                self.logger.error(f"Unexpected error with feed source '{source.name}': {e}", exc_info=True)
                continue

            self.logger.info(f"Top item from {source.name}: {item.title}")
            return item

        self.logger.error("No feed source produced a valid item")
        return None

    async def resolve_top_item_race(self, query: Optional[str] = None) -> Optional[NewsItem]:
        """
        Request every source at once and keep the first success to settle.

        Args:
            query: Optional search query for sources with a templated endpoint

        Returns:
            NewsItem from whichever source succeeded first, or None if all fail
        """
        sources = self.sources_for(query)
        if not sources:
            return None

        tasks = [asyncio.create_task(self.resolve_source(source, query)) for source in sources]
        try:
            for next_done in asyncio.as_completed(tasks):
                try:
                    item = await next_done
                except MemeDayError as e:
                    self.logger.warning(f"Feed source failed during race: {e}")
                    continue
                except Exception as e:
                    self.logger.error(f"Unexpected error during feed race: {e}", exc_info=True)
                    continue
                self.logger.info(f"Race won by {item.source_name}: {item.title}")
                return item
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Collect every outcome, including failures as_completed never handed back
            await asyncio.gather(*tasks, return_exceptions=True)

        self.logger.error("No feed source produced a valid item")
        return None

    async def resolve_source(self, source: FeedSource, query: Optional[str] = None) -> NewsItem:
        """
        Fetch and parse one source.

        Raises:
            TransportFailure: If the feed could not be downloaded
            ParseFailure: If the document is not a usable feed
            ValidationFailure: If the top item has no title or no absolute link
        """
        feed_url = source.build_url(query)
        self.logger.debug(f"Fetching feed '{source.name}' from {feed_url}")
        document = await self.fetcher.fetch_text(feed_url, self.timeout)
        return self.parse_top_item(source, document, feed_url)

    def parse_top_item(self, source: FeedSource, document: str, feed_url: str = "") -> NewsItem:
        """
        Turn a feed document into the NewsItem of its first item/entry.

        Args:
            source: Source the document came from
            document: Raw RSS/Atom XML
            feed_url: URL the document was fetched from (aggregator host fallback)

        Returns:
            NewsItem with an absolute link
        """
        if not document or not document.strip():
            raise ParseFailure(f"{source.name}: empty feed document")

        feed = feedparser.parse(document)
        bozo_exception = feed.get('bozo_exception')
        if feed.bozo and isinstance(bozo_exception, xml.sax.SAXException):
            raise ParseFailure(f"{source.name}: malformed XML ({bozo_exception})")
        if not feed.entries:
            raise ParseFailure(f"{source.name}: feed has no item or entry")

        version = feed.get('version', '') or ''
        expected = 'atom' if source.kind == FeedKind.ATOM else 'rss'
        if version and not version.startswith(expected):
            self.logger.debug(f"{source.name}: configured as {expected} but parsed as {version}")

        entry = feed.entries[0]

        title = " ".join((entry.get('title') or '').split())
        if not title:
            raise ValidationFailure(f"{source.name}: top item has no title")

        link = (entry.get('link') or '').strip()

        if source.requires_original_link_extraction:
            description = entry.get('summary') or entry.get('description') or ''
            aggregator_host = _host(link) if is_absolute_url(link) else _host(feed_url)
            original = extract_original_link(description, aggregator_host)
            if original:
                self.logger.debug(f"{source.name}: using original link {original}")
                link = original

        if not is_absolute_url(link):
            raise ValidationFailure(f"{source.name}: top item link is not absolute: {link!r}")

        return NewsItem(title=title, link=link, source_name=source.name)


async def resolve_top_item(
    sources: List[FeedSource],
    fetcher: TextFetcher,
    timeout: Optional[float] = None,
    query: Optional[str] = None
) -> Optional[NewsItem]:
    """Return the top item of the first source that yields a valid one, or None."""
    return await FeedResolver(sources, fetcher, timeout).resolve_top_item(query)
