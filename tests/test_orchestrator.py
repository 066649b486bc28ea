"""Unit tests for the pipeline orchestrator, scheduler and command line."""

import json
import logging
from unittest.mock import AsyncMock, Mock

import pytest
import yaml

from meme_day.__main__ import main
from meme_day.config import Config, FeedSource
from meme_day.exceptions import AllStrategiesExhausted
from meme_day.fetchers.fetch_resolver import FetchResolver
from meme_day.fetchers.image_resolver import ImageResolver
from meme_day.models import DailyEdition
from meme_day.orchestrator import PipelineOrchestrator
from meme_day.processing.summarizer import ExtractiveSummarizer
from meme_day.scheduler import Scheduler

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>G1</title>
  <item><title>Chuvas fortes atingem o Rio</title><link>https://g1.globo.com/rj/chuva.ghtml</link></item>
</channel></rss>"""

ARTICLE = """<html><head><script>track()</script></head><body>
<p>Chuvas fortes atingem o Rio de Janeiro nesta terça.</p>
<p>O governo declarou estado de emergência na cidade após os temporais.</p>
<p>Moradores relatam alagamentos em diversos bairros da zona sul.</p>
<p>A prefeitura abriu abrigos temporários para desalojados.</p>
<p>Previsão indica mais chuva nos próximos dias.</p>
</body></html>"""

IMAGE_URL = "https://image.pollinations.ai/prompt/chuvas"


@pytest.fixture
def config():
    return Config(
        feeds=[FeedSource(name="G1", endpoint="https://g1.globo.com/rss.xml")],
        log_file=None
    )


@pytest.fixture
def fetcher():
    mock = Mock(spec=FetchResolver)
    mock.fetch_text = AsyncMock(return_value=FEED)
    mock.fetch_with_retry = AsyncMock(return_value=ARTICLE)
    return mock


@pytest.fixture
def image_resolver():
    mock = Mock(spec=ImageResolver)
    mock.resolve_image_url = AsyncMock(return_value=IMAGE_URL)
    return mock


class TestPipelineOrchestrator:
    """Test the end-to-end edition flow with fake collaborators."""

    @pytest.mark.asyncio
    async def test_builds_edition(self, config, fetcher, image_resolver):
        """Test the happy path: headline, summary and image."""
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        assert edition.title == "Chuvas fortes atingem o Rio"
        assert edition.link == "https://g1.globo.com/rj/chuva.ghtml"
        assert edition.source_name == "G1"
        assert edition.image_url == IMAGE_URL
        assert edition.used_fallback is False
        assert edition.errors == []
        assert edition.summary.startswith("Chuvas fortes atingem o Rio de Janeiro nesta terça.")
        assert len(ExtractiveSummarizer.split_sentences(edition.summary)) == 3
        fetcher.fetch_with_retry.assert_awaited_once()
        assert fetcher.fetch_with_retry.call_args.args[0] == "https://g1.globo.com/rj/chuva.ghtml"
        image_resolver.resolve_image_url.assert_awaited_once_with("Chuvas fortes atingem o Rio")

    @pytest.mark.asyncio
    async def test_no_feed_uses_demo_item(self, config, fetcher, image_resolver):
        """Test that an exhausted feed list switches to the curated demo entry."""
        fetcher.fetch_text = AsyncMock(side_effect=AllStrategiesExhausted("https://g1.globo.com/rss.xml", []))
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        assert edition.used_fallback is True
        assert edition.title == config.demo.title
        assert edition.summary == config.demo.summary
        assert edition.image_url == IMAGE_URL
        assert len(edition.errors) == 1
        fetcher.fetch_with_retry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_article_failure_keeps_headline(self, config, fetcher, image_resolver):
        """Test that a missing article body yields the unavailable summary."""
        fetcher.fetch_with_retry = AsyncMock(side_effect=AllStrategiesExhausted("https://g1.globo.com/rj/chuva.ghtml", []))
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        assert edition.used_fallback is False
        assert edition.title == "Chuvas fortes atingem o Rio"
        assert edition.summary == "Resumo indisponível no momento."
        assert "Article unavailable" in edition.errors[0]

    @pytest.mark.asyncio
    async def test_empty_article_body(self, config, fetcher, image_resolver):
        fetcher.fetch_with_retry = AsyncMock(return_value="<script>only()</script>")
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        assert edition.summary == "Resumo indisponível no momento."
        assert "empty" in edition.errors[0]

    @pytest.mark.asyncio
    async def test_race_mode(self, config, fetcher, image_resolver):
        config.fetch.race_feeds = True
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        assert edition.source_name == "G1"

    @pytest.mark.asyncio
    async def test_saves_edition_json(self, config, fetcher, image_resolver, tmp_path):
        """Test that the edition is written for the rendering layer."""
        config.output_file = tmp_path / "out" / "edition.json"
        pipeline = PipelineOrchestrator(config, fetch_resolver=fetcher, image_resolver=image_resolver)

        edition = await pipeline.run_pipeline()

        with open(config.output_file, encoding="utf-8") as f:
            saved = json.load(f)
        assert saved["title"] == edition.title
        assert saved["image_url"] == IMAGE_URL
        assert "display_time" in saved


class TestScheduler:
    """Test scheduler setup."""

    def test_invalid_run_time(self):
        with pytest.raises(ValueError, match="HH:MM"):
            Scheduler(Mock(), run_time="oito horas")

    @pytest.mark.asyncio
    async def test_run_once_forwards_query(self):
        pipeline = Mock(spec=PipelineOrchestrator)
        edition = Mock(spec=DailyEdition)
        pipeline.run_pipeline = AsyncMock(return_value=edition)
        scheduler = Scheduler(pipeline, run_time="08:00", query="chuva")

        assert await scheduler.run_once() is edition
        pipeline.run_pipeline.assert_awaited_once_with("chuva")
        assert (scheduler.hours, scheduler.minutes) == (8, 0)


class TestCommandLine:
    """Test the command line entry point."""

    def test_invalid_config_exits_with_error(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"execution": {"run_time": "25:00"}}, f)

        assert main(["--config", str(path)]) == 2
        assert "run_time" in capsys.readouterr().err

    @pytest.fixture
    def reset_logger(self):
        yield
        logger = logging.getLogger("meme_day")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_prints_edition_and_writes_output(self, tmp_path, capsys, monkeypatch, reset_logger):
        """Test a full run with canned network responses."""
        monkeypatch.delenv("MEME_DAY_LOG_FILE", raising=False)
        monkeypatch.setattr(FetchResolver, "fetch_text", AsyncMock(return_value=FEED))
        monkeypatch.setattr(FetchResolver, "fetch_with_retry", AsyncMock(return_value=ARTICLE))
        monkeypatch.setattr(ImageResolver, "resolve_image_url", AsyncMock(return_value=IMAGE_URL))
        path = tmp_path / "config.yaml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({
                "feeds": [{"name": "G1", "url": "https://g1.globo.com/rss.xml"}],
                "paths": {"log_file": None}
            }, f)
        output = tmp_path / "out" / "edition.json"

        assert main(["--config", str(path), "--output", str(output)]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["title"] == "Chuvas fortes atingem o Rio"
        assert printed["source_name"] == "G1"
        assert printed["image_url"] == IMAGE_URL
        assert printed["used_fallback"] is False
        with open(output, encoding="utf-8") as f:
            assert json.load(f) == printed
