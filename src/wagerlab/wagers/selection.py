"""Ordered pattern matchers that classify a single selection line.

Matchers run most-specific first (player prop, spread, total, moneyline) and
the first hit wins. Every matcher takes the cleaned selection core and returns
a ``Classified`` or ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from wagerlab.wagers.types import BetKind, Direction, Matchup, Selection

_FRACTIONS = {"½": ".5", "¼": ".25", "¾": ".75", "¬Ω": ".5"}

STATUS_TAG = re.compile(r"\[(pending|live|won|lost|push|win|loss)\]", re.IGNORECASE)
SCORE_TAG = re.compile(r"\(Score:[^)]*\)", re.IGNORECASE)
ROTATION_TAG = re.compile(r"^\s*(?:-\s*)?\[\d+\]\s*")
TEASER_MARKER = re.compile(r"\(B\s*([+-])\s*(\d*\.?\d+)\)")
MATCHUP_PARENS = re.compile(
    r"\(\s*(?:(?P<period>[1-4](?:Q|H))\s+)?(?P<a>[^()]+?)\s+(?:vrs|vs\.?|@)\s+(?:[1-4](?:Q|H)\s+)?(?P<b>[^()]+?)\s*\)",
    re.IGNORECASE,
)
MATCHUP_LINE = re.compile(r"^(?P<a>.+?)\s+(?:vrs|vs\.?|@)\s+(?P<b>.+)$", re.IGNORECASE)
TRAILING_ODDS = re.compile(r"\s*(?P<odds>[+-]\d{3,}|(?<![A-Za-z])(?:EVEN|EV))\s*$", re.IGNORECASE)
PERIOD_PREFIX = re.compile(r"^(?P<period>[1-4](?:Q|H))\s+", re.IGNORECASE)

_PLAYER = r"(?P<player>[A-Za-z][A-Za-z.'\- ]*?)"
_TEAM_CODE = r"(?:\s*\((?P<team>[A-Z]{2,4})\))?"
_STAT = r"(?P<stat>[A-Za-z0-9][A-Za-z0-9 +&\-]*)"
PROP_PATTERN = re.compile(
    rf"^{_PLAYER}{_TEAM_CODE}\s+(?P<dir>Over|Under)\s+(?P<line>\d+(?:\.\d+)?)\s+{_STAT}$",
    re.IGNORECASE,
)
PROP_PLUS_PATTERN = re.compile(
    rf"^{_PLAYER}{_TEAM_CODE}\s+(?P<line>\d+(?:\.\d+)?)\+\s+{_STAT}$",
    re.IGNORECASE,
)
SPREAD_PATTERN = re.compile(r"^(?P<team>.+?)\s+(?P<line>[+-](?:\d+(?:\.\d+)?|\.\d+)|PK|PICK)$", re.IGNORECASE)
TOTAL_PATTERN = re.compile(
    r"^(?:TOTAL\s+)?(?P<dir>Over|Under)\s*(?P<line>\d+(?:\.\d+)?)\b|^TOTAL\s+(?P<short>[ou])\s*(?P<short_line>\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
MONEYLINE_PREFIX = re.compile(r"^(?:To Win:|Moneyline:|ML:)\s*", re.IGNORECASE)


@dataclass
class Classified:
    kind: BetKind
    selection: Selection
    matchup: Matchup = field(default_factory=Matchup)
    odds: int | None = None
    teaser_points: float | None = None


def normalize_fractions(text: str) -> str:
    for glyph, decimal in _FRACTIONS.items():
        text = text.replace(glyph, decimal)
    return text


def strip_annotations(text: str) -> str:
    """Drop status, score and rotation annotations from a slip line."""

    text = STATUS_TAG.sub(" ", text)
    text = SCORE_TAG.sub(" ", text)
    text = ROTATION_TAG.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def extract_odds(text: str) -> int | None:
    """Return the trailing signed integer (American odds) in a selection line."""

    cleaned = MATCHUP_PARENS.sub(" ", strip_annotations(normalize_fractions(text)))
    cleaned = TEASER_MARKER.sub(" ", cleaned).strip()
    match = TRAILING_ODDS.search(cleaned)
    if not match:
        return None
    raw = match.group("odds").upper()
    if raw in ("EV", "EVEN"):
        return 100
    return int(raw)


def split_matchup(text: str) -> tuple[str, str] | None:
    match = MATCHUP_LINE.match(text.strip())
    if not match:
        return None
    return match.group("a").strip(), match.group("b").strip()


def _match_prop(core: str) -> Classified | None:
    match = PROP_PATTERN.match(core)
    direction = None
    if match:
        direction = Direction.OVER if match.group("dir").lower() == "over" else Direction.UNDER
    else:
        match = PROP_PLUS_PATTERN.match(core)
        if not match:
            return None
        direction = Direction.OVER
    return Classified(
        kind=BetKind.PLAYER_PROP,
        selection=Selection(
            description=core,
            player=match.group("player").strip(),
            player_team=match.group("team"),
            line=float(match.group("line")),
            direction=direction,
            stat=match.group("stat").strip(),
        ),
    )


def _match_spread(core: str) -> Classified | None:
    match = SPREAD_PATTERN.match(core)
    if not match:
        return None
    raw_line = match.group("line").upper()
    line = 0.0 if raw_line in ("PK", "PICK") else float(raw_line)
    team = MONEYLINE_PREFIX.sub("", match.group("team")).strip()
    return Classified(
        kind=BetKind.SPREAD,
        selection=Selection(description=core, team=team, line=line),
        matchup=Matchup(team_a=team),
    )


def _match_total(core: str) -> Classified | None:
    match = TOTAL_PATTERN.match(core)
    if not match:
        return None
    if match.group("dir"):
        direction = Direction.OVER if match.group("dir").lower() == "over" else Direction.UNDER
        line = float(match.group("line"))
    else:
        direction = Direction.OVER if match.group("short").lower() == "o" else Direction.UNDER
        line = float(match.group("short_line"))
    return Classified(
        kind=BetKind.TOTAL,
        selection=Selection(description=core, line=line, direction=direction),
    )


def _match_moneyline(core: str) -> Classified | None:
    team = MONEYLINE_PREFIX.sub("", core).strip()
    if not team or not re.search(r"[A-Za-z]", team):
        return None
    return Classified(
        kind=BetKind.MONEYLINE,
        selection=Selection(description=core, team=team),
        matchup=Matchup(team_a=team),
    )


MATCHERS: list[Callable[[str], Classified | None]] = [
    _match_prop,
    _match_spread,
    _match_total,
    _match_moneyline,
]


def classify_selection(text: str) -> Classified | None:
    """Classify one selection line (odds, teaser marker and matchup included)."""

    line = strip_annotations(normalize_fractions(text))
    teaser_points = None
    teaser = TEASER_MARKER.search(line)
    if teaser:
        teaser_points = float(teaser.group(2))
        line = TEASER_MARKER.sub(" ", line)
    period = None
    matchup = Matchup()
    parens = MATCHUP_PARENS.search(line)
    if parens:
        period = parens.group("period")
        matchup = Matchup(team_a=parens.group("a").strip(), team_b=parens.group("b").strip())
        line = MATCHUP_PARENS.sub(" ", line)
    line = re.sub(r"\s+", " ", line).strip()
    odds = None
    odds_match = TRAILING_ODDS.search(line)
    if odds_match:
        raw = odds_match.group("odds").upper()
        odds = 100 if raw in ("EV", "EVEN") else int(raw)
        line = line[: odds_match.start()].strip()
    prefix = PERIOD_PREFIX.match(line)
    if prefix:
        period = period or prefix.group("period")
        line = line[prefix.end():]

    for matcher in MATCHERS:
        classified = matcher(line)
        if classified is None:
            continue
        classified.odds = odds
        classified.teaser_points = teaser_points
        classified.selection.period = period.upper() if period else None
        if matchup.teams:
            classified.matchup = Matchup(team_a=matchup.team_a, team_b=matchup.team_b)
        return classified
    return None
