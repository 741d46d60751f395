"""Provider adapter contract shared by every live-score source."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import httpx
from tenacity import RetryCallState, retry, retry_if_exception, stop_after_attempt, wait_fixed

from wagerlab.config import get_settings
from wagerlab.data.pacing import RateLimiter
from wagerlab.data.schemas import BoxScore, GameSnapshot
from wagerlab.wagers.normalizer import team_matches_any
from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)


class ProviderUnavailable(Exception):
    """Network, auth or payload-shape failure from a single provider."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


def search_dates(approx: datetime | None, today: date | None = None) -> list[date]:
    """Dates worth querying: around the known start, else the last three days."""

    if approx is not None:
        center = approx.date()
        return [center, center - timedelta(days=1), center + timedelta(days=1)]
    today = today or datetime.now(timezone.utc).date()
    return [today, today - timedelta(days=1), today - timedelta(days=2)]


def sides_match(
    team_a: str | None,
    team_b: str | None,
    away_names: Iterable[str | None],
    home_names: Iterable[str | None],
) -> bool:
    """True when the slip teams line up with the game's sides, in either order."""

    away, home = list(away_names), list(home_names)
    if not team_a and not team_b:
        return False
    if not team_a or not team_b:
        team = team_a or team_b
        return team_matches_any(team, away) or team_matches_any(team, home)
    return (team_matches_any(team_a, away) and team_matches_any(team_b, home)) or (
        team_matches_any(team_a, home) and team_matches_any(team_b, away)
    )


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    text = value.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(value[:16], "%Y-%m-%dT%H:%M").replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ProviderAdapter(ABC):
    """find-game / box-score contract; each adapter hides its own payload quirks."""

    name: str = "provider"
    sports: frozenset[Sport] = frozenset()
    supports_box_scores: bool = False

    def supports(self, sport: Sport) -> bool:
        return sport in self.sports

    @abstractmethod
    async def find_game(
        self,
        sport: Sport,
        team_a: str | None,
        team_b: str | None,
        approx_date: datetime | None,
    ) -> GameSnapshot | None:
        """Return the matching game or None when the provider does not list it."""

    async def fetch_box_score(self, sport: Sport, game_id: str, game_date: date | None) -> BoxScore | None:
        return None

    async def aclose(self) -> None:
        return None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return isinstance(exc, httpx.TransportError)


def _retry_log(retry_state: RetryCallState) -> None:  # pragma: no cover - logging helper
    attempt = retry_state.attempt_number
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Provider retry attempt %s due to %s", attempt, exception)


class HttpSource:
    """Holds an ``httpx.AsyncClient`` with retries and pacing."""

    name: str = "http"
    base_url: str = ""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
        self.rate_limiter = rate_limiter or RateLimiter(settings.provider_calls_per_minute)

    async def __aenter__(self) -> "HttpSource":  # pragma: no cover - context sugar
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - context sugar
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(1),
        retry=retry_if_exception(_is_transient),
        after=_retry_log,
        reraise=True,
    )
    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        await self.rate_limiter.wait_for_slot()
        url = f"{self.base_url}{path}"
        response = await self._client.get(url, params=params, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            return await self._request(path, params)
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.name, f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailable(self.name, f"invalid JSON from {path}") from exc


class HttpProvider(HttpSource, ProviderAdapter):
    """Game adapter backed by an HTTP API."""
