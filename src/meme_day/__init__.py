"""Meme Day: the top headline of the day with an extractive summary and a cover image."""

from .config import Config, FeedKind, FeedSource, ProxyStrategy, default_config, load_config
from .models import DailyEdition, NewsItem
from .orchestrator import PipelineOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Config",
    "FeedKind",
    "FeedSource",
    "ProxyStrategy",
    "default_config",
    "load_config",
    "DailyEdition",
    "NewsItem",
    "PipelineOrchestrator",
]
