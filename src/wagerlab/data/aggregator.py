"""Per-sport provider fallback with a short-lived lookup cache."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Mapping
from zoneinfo import ZoneInfo

from wagerlab.config import Settings, get_settings
from wagerlab.data.balldontlie_client import BallDontLieClient
from wagerlab.data.base import ProviderAdapter, ProviderUnavailable
from wagerlab.data.cache import MISSING, TTLCache
from wagerlab.data.espn_client import EspnClient
from wagerlab.data.schemas import BoxScore, GameSnapshot
from wagerlab.data.scoreroom_client import ScoreRoomClient
from wagerlab.wagers.normalizer import normalize_team
from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)

# US leagues file evening games under the local date, not the UTC one.
LEAGUE_TZ = ZoneInfo("America/New_York")


def league_date(snapshot: GameSnapshot) -> date | None:
    if snapshot.league_date is not None:
        return snapshot.league_date
    if snapshot.start_time is None:
        return None
    return snapshot.start_time.astimezone(LEAGUE_TZ).date()


ADAPTER_FACTORIES: Dict[str, Callable[[], ProviderAdapter]] = {
    "balldontlie": BallDontLieClient,
    "espn": EspnClient,
    "scoreroom": ScoreRoomClient,
}


@dataclass
class GameLookup:
    """Result of a game search plus the per-provider failures met on the way."""

    snapshot: GameSnapshot | None = None
    failures: List[str] = field(default_factory=list)
    cached: bool = False

    @property
    def found(self) -> bool:
        return self.snapshot is not None

    def describe_failure(self) -> str:
        if self.failures:
            return "; ".join(self.failures)
        return "Game not found at any provider"


@dataclass
class BoxLookup:
    box_score: BoxScore | None = None
    failures: List[str] = field(default_factory=list)


class LiveDataAggregator:
    """Tries each adapter in the sport's chain and returns the first game found."""

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter],
        chains: Mapping[str, List[str]],
        cache: TTLCache | None = None,
        *,
        call_timeout: float = 30.0,
        live_ttl: float = 30.0,
        idle_ttl: float = 300.0,
        miss_ttl: float = 60.0,
    ) -> None:
        self.adapters = dict(adapters)
        self.chains = {sport: list(chain) for sport, chain in chains.items()}
        self.cache = cache if cache is not None else TTLCache()
        self.call_timeout = call_timeout
        self.live_ttl = live_ttl
        self.idle_ttl = idle_ttl
        self.miss_ttl = miss_ttl

    @classmethod
    def from_settings(cls, settings: Settings | None = None, cache: TTLCache | None = None) -> "LiveDataAggregator":
        settings = settings or get_settings()
        adapters: Dict[str, ProviderAdapter] = {}
        wanted = {name for chain in settings.provider_chains.values() for name in chain}
        for name in sorted(wanted):
            factory = ADAPTER_FACTORIES.get(name)
            if factory is None:
                logger.warning("Unknown provider %s in provider_chains; skipping", name)
                continue
            try:
                adapters[name] = factory()
            except RuntimeError as exc:
                logger.info("Provider %s disabled: %s", name, exc)
        return cls(
            adapters,
            settings.provider_chains,
            cache,
            call_timeout=settings.request_timeout_seconds,
            live_ttl=settings.live_cache_ttl_seconds,
            idle_ttl=settings.idle_cache_ttl_seconds,
            miss_ttl=settings.miss_cache_ttl_seconds,
        )

    def chain_for(self, sport: Sport) -> List[ProviderAdapter]:
        chain: List[ProviderAdapter] = []
        for name in self.chains.get(sport.value, []):
            adapter = self.adapters.get(name)
            if adapter is not None and adapter.supports(sport):
                chain.append(adapter)
        return chain

    def _ttl(self, snapshot: GameSnapshot) -> float:
        return self.live_ttl if snapshot.is_live else self.idle_ttl

    async def find_game(
        self,
        sport: Sport,
        team_a: str | None,
        team_b: str | None,
        approx_date: datetime | None,
    ) -> GameLookup:
        teams = sorted((normalize_team(team_a), normalize_team(team_b)))
        key = ("game", sport.value, teams[0], teams[1], approx_date.date() if approx_date else None)
        cached = self.cache.get(key)
        if cached is not MISSING:
            return GameLookup(snapshot=cached, cached=True)

        failures: List[str] = []
        for adapter in self.chain_for(sport):
            try:
                snapshot = await asyncio.wait_for(
                    adapter.find_game(sport, team_a, team_b, approx_date), timeout=self.call_timeout
                )
            except ProviderUnavailable as exc:
                logger.warning("Provider %s failed for %s %s: %s", adapter.name, sport.value, teams, exc.reason)
                failures.append(str(exc))
                continue
            except asyncio.TimeoutError:
                failures.append(f"{adapter.name}: timed out after {self.call_timeout:g}s")
                continue
            if snapshot is not None:
                self.cache.set(key, snapshot, self._ttl(snapshot))
                return GameLookup(snapshot=snapshot, failures=failures)
        if not failures:
            # Every provider answered and none lists the game.
            self.cache.set(key, None, self.miss_ttl)
        return GameLookup(snapshot=None, failures=failures)

    async def find_box_score(self, sport: Sport, snapshot: GameSnapshot, team_a: str | None, team_b: str | None) -> BoxLookup:
        """Box score for a found game, from its provider first, then other box-capable providers."""

        key = ("box", sport.value, snapshot.provider, snapshot.game_id)
        cached = self.cache.get(key)
        if cached is not MISSING:
            return BoxLookup(box_score=cached)

        failures: List[str] = []
        game_date = league_date(snapshot)
        for adapter in self._box_order(sport, snapshot.provider):
            try:
                game_id, box_date = snapshot.game_id, game_date
                if adapter.name != snapshot.provider:
                    own = await asyncio.wait_for(
                        adapter.find_game(sport, team_a, team_b, snapshot.start_time), timeout=self.call_timeout
                    )
                    if own is None:
                        continue
                    game_id, box_date = own.game_id, league_date(own) or game_date
                box = await asyncio.wait_for(
                    adapter.fetch_box_score(sport, game_id, box_date), timeout=self.call_timeout
                )
            except ProviderUnavailable as exc:
                failures.append(str(exc))
                continue
            except asyncio.TimeoutError:
                failures.append(f"{adapter.name}: timed out after {self.call_timeout:g}s")
                continue
            if box is not None and box.players:
                self.cache.set(key, box, self._ttl(snapshot))
                return BoxLookup(box_score=box, failures=failures)
        return BoxLookup(box_score=None, failures=failures)

    def _box_order(self, sport: Sport, provider: str) -> Iterable[ProviderAdapter]:
        chain = [adapter for adapter in self.chain_for(sport) if adapter.supports_box_scores]
        return sorted(chain, key=lambda adapter: adapter.name != provider)

    async def aclose(self) -> None:
        for adapter in self.adapters.values():
            await adapter.aclose()
