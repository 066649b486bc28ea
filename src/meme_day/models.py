"""Data models for Meme Day."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List

# pt-BR names used for the human-readable edition timestamp
WEEKDAYS_PT = [
    "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
    "sexta-feira", "sábado", "domingo",
]
MONTHS_PT = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


@dataclass(frozen=True)
class NewsItem:
    """Top headline picked from a feed source."""
    title: str
    link: str  # always an absolute http(s) URL
    source_name: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SentenceScore:
    """Score of a single sentence within one summarization call."""
    text: str
    original_index: int
    score: float


@dataclass(frozen=True)
class StrategyFailure:
    """A failed attempt of one transport strategy."""
    strategy: str
    reason: str


def format_timestamp_pt(moment: datetime) -> str:
    """
    Format a datetime the way a pt-BR long date reads.

    Example: "terça-feira, 7 de outubro de 2025 às 08:05"
    """
    weekday = WEEKDAYS_PT[moment.weekday()]
    month = MONTHS_PT[moment.month - 1]
    return f"{weekday}, {moment.day} de {month} de {moment.year} às {moment:%H:%M}"


@dataclass
class DailyEdition:
    """Everything the rendering layer needs for one Meme Day page."""
    title: str
    link: str
    source_name: str
    summary: str
    image_url: str
    generated_at: datetime = field(default_factory=datetime.now)
    used_fallback: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def display_time(self) -> str:
        return format_timestamp_pt(self.generated_at)

    def to_dict(self) -> dict:
        """Convert edition to dictionary for JSON serialization."""
        data = asdict(self)
        data['generated_at'] = self.generated_at.isoformat()
        data['display_time'] = self.display_time
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'DailyEdition':
        """Create DailyEdition from dictionary."""
        data = data.copy()
        data.pop('display_time', None)
        if isinstance(data['generated_at'], str):
            data['generated_at'] = datetime.fromisoformat(data['generated_at'])
        return cls(**data)
