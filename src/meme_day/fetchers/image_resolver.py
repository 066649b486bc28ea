"""Cover image resolution: generated or keyword-searched images, then a placeholder."""

import asyncio
from typing import Callable, List, Optional
from urllib.parse import quote

import httpx

from ..config import ImageConfig
from ..logger import get_logger
from ..processing.text_normalizer import extract_keywords

# Turns a seed text (the headline) into a candidate URL, or None to skip
CandidateBuilder = Callable[[str], Optional[str]]


def _fits(url: str, max_url_bytes: int) -> bool:
    return len(url.encode("utf-8")) <= max_url_bytes


def pollinations_builder(
    width: int = 1280,
    height: int = 720,
    style: str = "",
    max_keywords: int = 8,
    max_url_bytes: int = 2000
) -> CandidateBuilder:
    """
    Build candidates for the Pollinations prompt-to-image endpoint.

    The prompt is the headline keywords followed by the style line. Keywords
    are dropped from the end until the URL fits the byte budget.
    """
    def build(seed: str) -> Optional[str]:
        keywords = extract_keywords(seed, limit=max_keywords)
        while True:
            prompt = " ".join(keywords + [style]).strip()
            if not prompt:
                return None
            url = f"https://image.pollinations.ai/prompt/{quote(prompt, safe='')}?width={width}&height={height}&nologo=true"
            if _fits(url, max_url_bytes):
                return url
            if not keywords:
                return None
            keywords = keywords[:-1]

    return build


def loremflickr_builder(
    width: int = 1280,
    height: int = 720,
    max_keywords: int = 3,
    max_url_bytes: int = 2000
) -> CandidateBuilder:
    """Build candidates for LoremFlickr keyword photo search."""
    def build(seed: str) -> Optional[str]:
        keywords = extract_keywords(seed, limit=max_keywords)
        while keywords:
            url = f"https://loremflickr.com/{width}/{height}/{quote(','.join(keywords), safe=',')}"
            if _fits(url, max_url_bytes):
                return url
            keywords = keywords[:-1]
        return None

    return build


def builders_from_config(config: ImageConfig) -> List[CandidateBuilder]:
    """Instantiate the builders named in ``config.providers``, in order."""
    factories = {
        "pollinations": lambda: pollinations_builder(
            config.width, config.height, config.style, config.max_keywords, config.max_url_bytes
        ),
        "loremflickr": lambda: loremflickr_builder(
            config.width, config.height, max_url_bytes=config.max_url_bytes
        ),
    }
    builders = []
    for name in config.providers:
        factory = factories.get(name)
        if factory is None:
            get_logger().warning(f"Unknown image provider '{name}', skipping")
            continue
        builders.append(factory())
    return builders


class ImageResolver:
    """Returns the first reachable image URL for a headline, never failing."""

    def __init__(
        self,
        builders: List[CandidateBuilder],
        placeholder_url: str,
        timeout: float = 6.0,
        max_url_bytes: int = 2000,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize image resolver.

        Args:
            builders: Candidate builders in preference order
            placeholder_url: Guaranteed-available fallback, never probed
            timeout: Seconds allowed for each probe
            max_url_bytes: Longest candidate URL accepted
            transport: Optional httpx transport (mainly for tests)
        """
        self.builders = list(builders)
        self.placeholder_url = placeholder_url
        self.timeout = timeout
        self.max_url_bytes = max_url_bytes
        self.transport = transport
        self.logger = get_logger()

    @classmethod
    def from_config(cls, config: ImageConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> 'ImageResolver':
        return cls(
            builders=builders_from_config(config),
            placeholder_url=config.placeholder_url,
            timeout=config.timeout_seconds,
            max_url_bytes=config.max_url_bytes,
            transport=transport
        )

    def build_candidates(self, seed_text: str) -> List[str]:
        """
        Ordered candidate URLs for a seed, placeholder last.

        Builders that fail, return nothing, or exceed the byte budget are skipped.
        """
        candidates: List[str] = []
        for builder in self.builders:
            try:
                url = builder(seed_text or "")
            except Exception as e:
                self.logger.warning(f"Image candidate builder failed: {e}")
                continue
            if not url:
                continue
            if not _fits(url, self.max_url_bytes):
                self.logger.debug(f"Skipping image candidate over {self.max_url_bytes} bytes")
                continue
            if url not in candidates:
                candidates.append(url)
        candidates.append(self.placeholder_url)
        return candidates

    async def resolve_image_url(self, seed_text: str) -> str:
        """
        Probe candidates in order and return the first that loads as an image.

        Args:
            seed_text: Headline (optionally with summary) the image should illustrate

        Returns:
            A reachable image URL, or the placeholder
        """
        candidates = self.build_candidates(seed_text)
        for url in candidates[:-1]:
            if await self.probe(url):
                self.logger.info(f"Using generated image: {url[:120]}")
                return url

        self.logger.warning("No image candidate loaded, using placeholder")
        return self.placeholder_url

    async def probe(self, url: str) -> bool:
        """True if the URL answers 2xx with an image content type within the timeout."""
        try:
            return await asyncio.wait_for(self._probe_once(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Image probe timed out after {self.timeout}s: {url[:120]}")
        except httpx.HTTPError as e:
            self.logger.warning(f"Image probe failed for {url[:120]}: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected error probing {url[:120]}: {e}")
        return False

    async def _probe_once(self, url: str) -> bool:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self.transport) as client:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    self.logger.warning(f"Image probe got HTTP {response.status_code}: {url[:120]}")
                    return False
                content_type = response.headers.get("content-type", "")
                if not content_type.startswith("image/"):
                    self.logger.warning(f"Image probe got non-image content ({content_type or 'unknown'})")
                    return False
                return True


async def resolve_image_url(
    seed_text: str,
    builders: List[CandidateBuilder],
    placeholder_url: str,
    timeout: float = 6.0
) -> str:
    """Resolve an image URL with a one-off ImageResolver."""
    return await ImageResolver(builders, placeholder_url, timeout).resolve_image_url(seed_text)
