"""Ordered transport fallback: direct fetch first, then each proxy in turn."""

import asyncio
from typing import Dict, List, Optional

import httpx

from ..config import ProxyStrategy
from ..exceptions import AllStrategiesExhausted, ParseFailure
from ..logger import get_logger
from ..models import StrategyFailure

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchResolver:
    """Fetches a URL through an ordered list of transport strategies."""

    def __init__(
        self,
        strategies: List[ProxyStrategy],
        per_attempt_timeout: float = 8.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize fetch resolver.

        Args:
            strategies: Strategies in trial order
            per_attempt_timeout: Seconds allowed for each attempt
            user_agent: User-Agent header sent with every request
            transport: Optional httpx transport (mainly for tests)
        """
        self.strategies = list(strategies)
        self.per_attempt_timeout = per_attempt_timeout
        self.headers: Dict[str, str] = {"User-Agent": user_agent}
        self.transport = transport
        self.logger = get_logger()

    async def fetch_via_strategies(self, target_url: str, timeout: Optional[float] = None) -> str:
        """
        Return the payload of the first strategy that succeeds.

        Each strategy is tried once, in order. Timeouts, network errors and
        non-success statuses are recorded and the next strategy is tried.

        Args:
            target_url: URL whose content is wanted
            timeout: Per-attempt timeout override in seconds

        Returns:
            Response body (unwrapped for JSON-wrapping proxies)

        Raises:
            AllStrategiesExhausted: If every strategy failed
        """
        timeout = timeout or self.per_attempt_timeout
        failures: List[StrategyFailure] = []

        for strategy in self.strategies:
            try:
                payload = await self._attempt(strategy, target_url, timeout)
            except asyncio.TimeoutError:
                reason = f"timeout after {timeout}s"
            except httpx.HTTPStatusError as e:
                reason = f"HTTP {e.response.status_code}"
            except (httpx.HTTPError, ParseFailure) as e:
                reason = str(e) or e.__class__.__name__
            except Exception as e:
                reason = f"unexpected error: {e!r}"
            else:
                self.logger.debug(f"Fetched {target_url} via {strategy.name} ({len(payload)} chars)")
                return payload

            failures.append(StrategyFailure(strategy=strategy.name, reason=reason))
            self.logger.warning(f"Strategy '{strategy.name}' failed for {target_url}: {reason}")

        self.logger.error(f"All {len(failures)} strategies failed for {target_url}")
        raise AllStrategiesExhausted(target_url, failures)

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> str:
        """Fetch capability handed to the feed resolver."""
        return await self.fetch_via_strategies(url, timeout)

    async def fetch_with_retry(
        self,
        target_url: str,
        max_retries: int = 3,
        base_delay: float = 1.0
    ) -> str:
        """
        Run the whole strategy chain again with exponential backoff.

        Args:
            target_url: URL whose content is wanted
            max_retries: Maximum number of chain runs
            base_delay: Delay before the second run; doubles each time

        Raises:
            AllStrategiesExhausted: Error of the last run when every run failed
        """
        max_retries = max(1, max_retries)
        last_error: Optional[AllStrategiesExhausted] = None
        for attempt in range(max_retries):
            try:
                return await self.fetch_via_strategies(target_url)
            except AllStrategiesExhausted as e:
                last_error = e
                self.logger.warning(f"Attempt {attempt + 1}/{max_retries} failed for {target_url}")
                if attempt < max_retries - 1:
                    await asyncio.sleep(base_delay * 2 ** attempt)  # 1s, 2s, 4s with the default
        raise last_error

    async def _attempt(self, strategy: ProxyStrategy, target_url: str, timeout: float) -> str:
        request_url = strategy.build_request_url(target_url)
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=self.headers,
            transport=self.transport
        ) as client:
            # wait_for cancels the in-flight request when the timer expires
            response = await asyncio.wait_for(client.get(request_url), timeout=timeout)
            response.raise_for_status()

        if not strategy.json_field:
            return response.text

        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailure(f"{strategy.name} returned invalid JSON: {e}")
        payload = data.get(strategy.json_field) if isinstance(data, dict) else None
        if not isinstance(payload, str) or not payload:
            raise ParseFailure(f"{strategy.name} response has no '{strategy.json_field}' payload")
        return payload
