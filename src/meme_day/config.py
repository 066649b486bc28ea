"""Configuration management for Meme Day."""

import base64
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import quote, quote_plus

import yaml
from dotenv import load_dotenv


class FeedKind(str, Enum):
    """Syndication format a feed source is expected to serve."""
    RSS = "rss"
    ATOM = "atom"


@dataclass(frozen=True)
class FeedSource:
    """A configured RSS/Atom endpoint. Order in the list is its priority."""
    name: str
    endpoint: Union[str, Callable[[Optional[str]], str]]
    kind: FeedKind = FeedKind.RSS
    requires_original_link_extraction: bool = False
    enabled: bool = True

    def build_url(self, query: Optional[str] = None) -> str:
        """
        Resolve the endpoint into a feed URL.

        String endpoints may contain a ``{query}`` placeholder, filled with the
        URL-encoded query (empty when no query is given).
        """
        if callable(self.endpoint):
            return self.endpoint(query)
        if "{query}" in self.endpoint:
            return self.endpoint.replace("{query}", quote_plus(query or ""))
        return self.endpoint

    @property
    def uses_query(self) -> bool:
        """True for search endpoints, which are only worth fetching with a query."""
        return callable(self.endpoint) or "{query}" in self.endpoint


@dataclass(frozen=True)
class ProxyStrategy:
    """A way of reaching a target URL, directly or through a proxy."""
    name: str
    transform: Callable[[str], str]
    json_field: Optional[str] = None  # payload key for proxies that wrap the body in JSON

    def build_request_url(self, target_url: str) -> str:
        return self.transform(target_url)

    @classmethod
    def from_template(cls, name: str, template: str, json_field: Optional[str] = None) -> 'ProxyStrategy':
        """
        Build a strategy from a URL template.

        ``{url}`` is replaced with the percent-encoded target and ``{raw_url}``
        with the target as-is; ``"{raw_url}"`` alone is a direct fetch.
        """
        def transform(target_url: str) -> str:
            return (
                template
                .replace("{raw_url}", target_url)
                .replace("{url}", quote(target_url, safe=""))
            )

        return cls(name=name, transform=transform, json_field=json_field)


@dataclass
class FetchConfig:
    """Configuration for feed and article fetching."""
    timeout_seconds: float = 8.0
    max_retries: int = 2
    retry_base_delay: float = 1.0
    race_feeds: bool = False
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class SummaryConfig:
    """Configuration for the extractive summarizer."""
    max_sentences: int = 3
    max_input_chars: int = 8000
    min_sentence_length: int = 20
    readable_min_words: int = 8
    readable_max_words: int = 30
    readable_bonus: float = 0.5
    unavailable_text: str = "Resumo indisponível no momento."


def _svg_data_uri(svg: str) -> str:
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


DEFAULT_PLACEHOLDER_URL = _svg_data_uri(
    '<svg xmlns="http://www.w3.org/2000/svg" width="1280" height="720" viewBox="0 0 1280 720">'
    '<rect width="1280" height="720" fill="#ff7a18"/>'
    '<text x="640" y="380" font-family="sans-serif" font-size="96" fill="#fff" '
    'text-anchor="middle">Meme Day</text></svg>'
)


@dataclass
class ImageConfig:
    """Configuration for cover image resolution."""
    width: int = 1280
    height: int = 720
    timeout_seconds: float = 6.0
    max_url_bytes: int = 2000
    max_keywords: int = 8
    style: str = (
        "Ilustração digital flat, cores quentes e alto contraste, estilo Meme Day. "
        "Composição centrada, limpa, sem texto na imagem, visual moderno."
    )
    providers: List[str] = field(default_factory=lambda: ["pollinations", "loremflickr"])
    placeholder_url: str = DEFAULT_PLACEHOLDER_URL


@dataclass
class DemoItem:
    """Curated entry shown whenever the live pipeline yields nothing."""
    title: str = "Meme Day: as notícias voltam em instantes"
    link: str = "https://g1.globo.com/"
    source_name: str = "Meme Day"
    summary: str = (
        "Não foi possível carregar a notícia do dia agora. "
        "Volte em alguns minutos para ver o destaque atualizado."
    )


def default_feed_sources() -> List[FeedSource]:
    """G1 most-read, UOL latest, Google News Brazil, and the Google News search feed."""
    return [
        FeedSource(name="G1", endpoint="https://g1.globo.com/dynamo/mais-lidas/rss2.xml"),
        FeedSource(name="UOL", endpoint="https://noticias.uol.com.br/ultimas/index.xml"),
        FeedSource(
            name="Google News",
            endpoint="https://news.google.com/rss?hl=pt-BR&gl=BR&ceid=BR:pt-419",
            requires_original_link_extraction=True,
        ),
        FeedSource(
            name="Google News (busca)",
            endpoint="https://news.google.com/rss/search?q={query}&hl=pt-BR&gl=BR&ceid=BR:pt-419",
            requires_original_link_extraction=True,
        ),
    ]


def default_proxy_strategies() -> List[ProxyStrategy]:
    return [
        ProxyStrategy.from_template("direct", "{raw_url}"),
        ProxyStrategy.from_template("allorigins", "https://api.allorigins.win/get?url={url}", json_field="contents"),
        ProxyStrategy.from_template("allorigins-raw", "https://api.allorigins.win/raw?url={url}"),
        ProxyStrategy.from_template("corsproxy", "https://corsproxy.io/?{url}"),
    ]


@dataclass
class Config:
    """Main application configuration."""
    feeds: List[FeedSource] = field(default_factory=default_feed_sources)
    proxies: List[ProxyStrategy] = field(default_factory=default_proxy_strategies)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    demo: DemoItem = field(default_factory=DemoItem)

    run_time: str = "08:00"
    log_level: str = "INFO"
    log_file: Optional[Path] = field(default_factory=lambda: Path("logs/meme_day.log"))
    output_file: Optional[Path] = None


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


def default_config() -> Config:
    """Built-in configuration used when no YAML file is supplied."""
    config = Config()
    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: Config) -> None:
    run_time = os.getenv('MEME_DAY_RUN_TIME')
    if run_time:
        config.run_time = run_time
    log_file = os.getenv('MEME_DAY_LOG_FILE')
    if log_file:
        config.log_file = Path(log_file)


def _parse_feed(feed_data) -> FeedSource:
    if isinstance(feed_data, str):
        # Short format: just the URL, named after itself
        return FeedSource(name=feed_data, endpoint=feed_data)
    if not isinstance(feed_data, dict):
        raise ConfigError(f"Invalid feed format: {feed_data!r}")
    try:
        url = feed_data['url']
    except KeyError:
        raise ConfigError(f"Feed configuration missing 'url': {feed_data!r}")
    try:
        kind = FeedKind(str(feed_data.get('kind', 'rss')).lower())
    except ValueError:
        raise ConfigError(f"Invalid feed kind for {url}: {feed_data.get('kind')}")
    return FeedSource(
        name=feed_data.get('name', url),
        endpoint=url,
        kind=kind,
        requires_original_link_extraction=bool(feed_data.get('extract_original_link', False)),
        enabled=feed_data.get('enabled', True),
    )


def _parse_proxy(proxy_data) -> ProxyStrategy:
    if not isinstance(proxy_data, dict):
        raise ConfigError(f"Invalid proxy format: {proxy_data!r}")
    try:
        return ProxyStrategy.from_template(
            name=proxy_data['name'],
            template=proxy_data['template'],
            json_field=proxy_data.get('json_field'),
        )
    except KeyError as e:
        raise ConfigError(f"Missing required proxy config field: {e}")


def load_config(config_path: str = "config/config.yaml") -> Config:
    """
    Load configuration from YAML file and environment variables.

    Sections that are absent fall back to the built-in defaults.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Config object with all settings

    Raises:
        ConfigError: If the file is missing, unparsable or has invalid fields
    """
    load_dotenv("config/.env")
    load_dotenv()

    if not os.path.exists(config_path):
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            yaml_config = yaml.safe_load(f)
    except Exception as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")

    if not yaml_config:
        raise ConfigError("Configuration file is empty")
    if not isinstance(yaml_config, dict):
        raise ConfigError("Configuration root must be a mapping")

    config = Config()

    if 'feeds' in yaml_config:
        config.feeds = [_parse_feed(f) for f in yaml_config['feeds'] or []]
    if 'proxies' in yaml_config:
        config.proxies = [_parse_proxy(p) for p in yaml_config['proxies'] or []]

    fetch_data = yaml_config.get('fetch', {}) or {}
    summary_data = yaml_config.get('summary', {}) or {}
    image_data = yaml_config.get('image', {}) or {}
    demo_data = yaml_config.get('demo', {}) or {}
    try:
        config.fetch = FetchConfig(**fetch_data)
        config.summary = SummaryConfig(**summary_data)
        config.image = ImageConfig(**image_data)
        config.demo = DemoItem(**demo_data)
    except TypeError as e:
        raise ConfigError(f"Unknown configuration field: {e}")

    execution_config = yaml_config.get('execution', {}) or {}
    config.run_time = execution_config.get('run_time', config.run_time)

    paths_config = yaml_config.get('paths', {}) or {}
    if 'log_file' in paths_config:
        log_file = paths_config['log_file']
        config.log_file = Path(log_file) if log_file else None
    if paths_config.get('output_file'):
        config.output_file = Path(paths_config['output_file'])

    logging_config = yaml_config.get('logging', {}) or {}
    config.log_level = logging_config.get('level', config.log_level)

    _apply_env_overrides(config)
    return config


def validate_config(config: Config) -> None:
    """
    Validate configuration object.

    Args:
        config: Configuration object to validate

    Raises:
        ConfigError: If configuration is invalid
    """
    try:
        hours, minutes = config.run_time.split(':')
        if not (0 <= int(hours) <= 23 and 0 <= int(minutes) <= 59):
            raise ValueError
    except ValueError:
        raise ConfigError(f"Invalid run_time format (use HH:MM): {config.run_time}")

    if not any(feed.enabled for feed in config.feeds):
        raise ConfigError("At least one enabled feed source is required")
    if not config.proxies:
        raise ConfigError("At least one proxy strategy is required (use '{raw_url}' for direct fetch)")

    if config.fetch.timeout_seconds <= 0:
        raise ConfigError(f"fetch.timeout_seconds must be positive: {config.fetch.timeout_seconds}")
    if config.fetch.max_retries < 1:
        raise ConfigError(f"fetch.max_retries must be at least 1: {config.fetch.max_retries}")

    summary = config.summary
    if summary.max_sentences < 1:
        raise ConfigError(f"summary.max_sentences must be at least 1: {summary.max_sentences}")
    if summary.max_input_chars <= 0:
        raise ConfigError(f"summary.max_input_chars must be positive: {summary.max_input_chars}")
    if summary.readable_min_words > summary.readable_max_words:
        raise ConfigError(
            f"summary readable band is inverted: {summary.readable_min_words}-{summary.readable_max_words}"
        )

    image = config.image
    if image.width <= 0 or image.height <= 0:
        raise ConfigError(f"Invalid image dimensions: {image.width}x{image.height}")
    if image.timeout_seconds <= 0:
        raise ConfigError(f"image.timeout_seconds must be positive: {image.timeout_seconds}")
    if not image.placeholder_url:
        raise ConfigError("image.placeholder_url must not be empty")
