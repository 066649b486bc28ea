"""Pipeline orchestrator for building the daily Meme Day edition."""

import json
import time
from pathlib import Path
from typing import List, Optional

from .config import Config
from .exceptions import AllSourcesExhausted, MemeDayError, ValidationFailure
from .fetchers.feed_resolver import FeedResolver
from .fetchers.fetch_resolver import FetchResolver
from .fetchers.image_resolver import ImageResolver
from .logger import get_logger
from .models import DailyEdition, NewsItem
from .processing.summarizer import ExtractiveSummarizer
from .processing.text_normalizer import clean


class PipelineOrchestrator:
    """Runs feed -> article -> summary -> image and always produces an edition."""

    def __init__(
        self,
        config: Config,
        fetch_resolver: Optional[FetchResolver] = None,
        image_resolver: Optional[ImageResolver] = None
    ):
        """
        Initialize pipeline orchestrator.

        Args:
            config: Application configuration
            fetch_resolver: Transport fallback chain (built from config if omitted)
            image_resolver: Cover image resolver (built from config if omitted)
        """
        self.config = config
        self.logger = get_logger()

        self.fetcher = fetch_resolver or FetchResolver(
            strategies=config.proxies,
            per_attempt_timeout=config.fetch.timeout_seconds,
            user_agent=config.fetch.user_agent
        )
        self.feed_resolver = FeedResolver(config.feeds, self.fetcher, config.fetch.timeout_seconds)
        self.summarizer = ExtractiveSummarizer(config.summary)
        self.image_resolver = image_resolver or ImageResolver.from_config(config.image)

    async def run_pipeline(self, query: Optional[str] = None) -> DailyEdition:
        """
        Build today's edition.

        A missing headline switches to the curated demo item; a missing article
        body keeps the headline with the "unavailable" summary.

        Args:
            query: Optional search query for templated feed endpoints

        Returns:
            DailyEdition ready for rendering
        """
        start_time = time.time()
        self.logger.info("=" * 70)
        self.logger.info("Starting Meme Day pipeline")
        self.logger.info("=" * 70)

        errors: List[str] = []

        # Stage 1: Pick the top headline
        self.logger.info("Stage 1: Resolving top headline")
        try:
            item = await self._resolve_item(query)
            self.logger.info(f"OK: {item.source_name} - {item.title}")
        except AllSourcesExhausted as e:
            error_msg = f"WARNING: {e}"
            self.logger.warning(f"{error_msg}, using demo item")
            errors.append(error_msg)
            edition = await self._demo_edition(errors)
            self._finish(edition, start_time)
            return edition

        # Stage 2: Fetch and clean the article
        self.logger.info("Stage 2: Fetching article text")
        text = ""
        try:
            text = await self._fetch_article_text(item.link)
            self.logger.info(f"OK: Article text has {len(text)} characters")
        except MemeDayError as e:
            error_msg = f"WARNING: Article unavailable: {e}"
            self.logger.warning(error_msg)
            errors.append(error_msg)

        # Stage 3: Summarize
        self.logger.info("Stage 3: Summarizing")
        summary = self.summarizer.summarize(text)
        self.logger.info(f"OK: Summary has {len(summary)} characters")

        # Stage 4: Cover image
        self.logger.info("Stage 4: Resolving cover image")
        image_url = await self.image_resolver.resolve_image_url(item.title)

        edition = DailyEdition(
            title=item.title,
            link=item.link,
            source_name=item.source_name,
            summary=summary,
            image_url=image_url,
            used_fallback=False,
            errors=errors
        )
        self._finish(edition, start_time)
        return edition

    async def _resolve_item(self, query: Optional[str]) -> NewsItem:
        if self.config.fetch.race_feeds:
            item = await self.feed_resolver.resolve_top_item_race(query)
        else:
            item = await self.feed_resolver.resolve_top_item(query)
        if item is None:
            raise AllSourcesExhausted(
                f"No item from {len(self.feed_resolver.sources_for(query))} feed sources"
            )
        return item

    async def _fetch_article_text(self, url: str) -> str:
        html = await self.fetcher.fetch_with_retry(
            url,
            max_retries=self.config.fetch.max_retries,
            base_delay=self.config.fetch.retry_base_delay
        )
        text = clean(html)
        if not text:
            raise ValidationFailure(f"Article body is empty: {url}")
        return text

    async def _demo_edition(self, errors: List[str]) -> DailyEdition:
        demo = self.config.demo
        image_url = await self.image_resolver.resolve_image_url(demo.title)
        return DailyEdition(
            title=demo.title,
            link=demo.link,
            source_name=demo.source_name,
            summary=demo.summary,
            image_url=image_url,
            used_fallback=True,
            errors=errors
        )

    def _finish(self, edition: DailyEdition, start_time: float) -> None:
        if self.config.output_file:
            self.save_edition(edition, self.config.output_file)

        execution_time = time.time() - start_time
        self.logger.info("=" * 70)
        status = "demo fallback" if edition.used_fallback else edition.source_name
        self.logger.info(f"Pipeline finished in {execution_time:.2f} seconds ({status})")
        self.logger.info("=" * 70)

    def save_edition(self, edition: DailyEdition, output_file: Path) -> None:
        """
        Write the edition as JSON for the rendering layer.

        Args:
            edition: Edition to save
            output_file: Destination path (parent directories are created)
        """
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(edition.to_dict(), f, indent=2, ensure_ascii=False)
            self.logger.debug(f"Saved edition to {output_file}")
        except OSError as e:
            self.logger.error(f"Failed to save edition to {output_file}: {e}")
