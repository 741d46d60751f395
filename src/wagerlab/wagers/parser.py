"""Turn copy-pasted sportsbook history into structured wagers.

A paste holds any number of slips. Each slip starts with a date line
(``Dec-07-2025``) followed by a header ``12:06 PM<TAB>600311842<TAB>PLAYER PROPS BET``
and ends with the risk/win pair (``$90/$80.10``). Blocks that cannot be read
become ``ParseError`` records; the rest of the paste still parses.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from wagerlab.config import get_settings
from wagerlab.wagers.legs import format_leg, parse_slip_time
from wagerlab.wagers.normalizer import resolve_sport
from wagerlab.wagers.odds import payout_to_american, potential_payout
from wagerlab.wagers.selection import (
    Classified,
    classify_selection,
    normalize_fractions,
    split_matchup,
    strip_annotations,
)
from wagerlab.wagers.types import (
    BetKind,
    LegStatus,
    Matchup,
    ParseError,
    Result,
    Selection,
    Sport,
    Wager,
    WagerLeg,
)

logger = logging.getLogger(__name__)

_MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"
BLOCK_SPLIT = re.compile(rf"\n(?=(?:{_MONTHS})-\d{{2}}-\d{{4}}\s*\n)")
DATE_LINE = re.compile(rf"^(?:{_MONTHS})-\d{{2}}-\d{{4}}$")
HEADER_LINE = re.compile(r"^(?P<time>\d{1,2}:\d{2}\s*[AP]M)\b\s*(?P<rest>.*)$", re.IGNORECASE)
TICKET = re.compile(r"(?<!\d)(\d{9})(?!\d)")
STAKE_PAIR = re.compile(r"\$([\d,]+(?:\.\d{1,2})?)\s*/\s*\$([\d,]+(?:\.\d{1,2})?)")
BLOCK_STATUS = re.compile(r"^\s*(pending|won|lost|push|win|loss)\b", re.IGNORECASE | re.MULTILINE)
SLIP_LINE = re.compile(
    rf"^\[(?P<when>(?:{_MONTHS})-\d{{2}}-\d{{4}}(?:\s+\d{{1,2}}:\d{{2}}\s*[AP]M)?)\]\s*"
    r"\[(?P<sport>[^\]]+)\]\s*-?\s*(?P<rest>.*)$"
)
ROTATION_LINE = re.compile(r"^\[(?P<rot>\d+)\]\s*(?P<detail>.+)$")
LINE_STATUS = re.compile(r"\[(pending|won|lost|push|live)\]", re.IGNORECASE)
LIVE_LINE = re.compile(r"^\d+\s*-\s*(?P<body>.+/.+)$")
SUB_SLIP = re.compile(r"^\[[A-Z]+\]\s*-\s*.*(?:\|ID:\d+)?", re.IGNORECASE)
TEASER_HEADER_POINTS = {
    "football": re.compile(r"\bFB\s+(\d*\.?\d+)"),
    "basketball": re.compile(r"\b(?:NBA|CBB|BB)\s+(\d*\.?\d+)"),
}

_RESULT_WORDS = {"won": Result.WON, "win": Result.WON, "lost": Result.LOST, "loss": Result.LOST, "push": Result.PUSH}


class BlockParseError(ValueError):
    """Raised inside the parser when a block cannot be classified."""


@dataclass
class ParseWarning:
    wager_id: str
    message: str


@dataclass
class ParseResult:
    wagers: list[Wager] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)


@dataclass
class _Header:
    placed_at: datetime | None
    ticket: str | None
    type_text: str
    stake: float | None
    to_win: float | None
    is_free_play: bool
    is_live: bool
    status_word: str | None


def _money(value: str) -> float:
    return float(value.replace(",", ""))


def split_blocks(text: str) -> list[str]:
    cleaned = normalize_fractions(text.replace("\r\n", "\n")).strip()
    if not cleaned:
        return []
    return [block.strip() for block in BLOCK_SPLIT.split(cleaned) if block.strip()]


class WagerParser:
    """Parse pasted slip history into wagers."""

    def __init__(self, tz: ZoneInfo | None = None, user_id: str | None = None) -> None:
        self.tz = tz or ZoneInfo(get_settings().slip_timezone)
        self.user_id = user_id

    def parse(self, text: str, now: datetime | None = None) -> ParseResult:
        now = now or datetime.now(timezone.utc)
        result = ParseResult()
        for index, block in enumerate(split_blocks(text)):
            try:
                wager, warnings = self._parse_block(block, now)
            except BlockParseError as exc:
                logger.info("Skipping slip block %s: %s", index, exc)
                result.errors.append(ParseError(block_index=index, raw_text_prefix=block[:200], reason=str(exc)))
                continue
            result.wagers.append(wager)
            result.warnings.extend(ParseWarning(wager.id, message) for message in warnings)
        return result

    # -- header -----------------------------------------------------------

    def _read_header(self, lines: list[str], block: str) -> _Header:
        if not lines or not DATE_LINE.match(lines[0].strip()):
            raise BlockParseError("missing slip date line")
        date_text = lines[0].strip()
        placed_at = None
        rest = ""
        for line in lines[1:6]:
            match = HEADER_LINE.match(line.strip())
            if match:
                placed_at = parse_slip_time(f"{date_text} {match.group('time')}", self.tz)
                rest = match.group("rest")
                break
        if placed_at is None:
            placed_at = parse_slip_time(date_text, self.tz)
        ticket_match = TICKET.search(rest) or TICKET.search(block)
        type_text = TICKET.sub(" ", rest).replace("\t", " ").strip()
        stake_match = STAKE_PAIR.search(block)
        upper = block.upper()
        status_match = BLOCK_STATUS.search("\n".join(lines[2:]))
        return _Header(
            placed_at=placed_at,
            ticket=ticket_match.group(1) if ticket_match else None,
            type_text=re.sub(r"\s+", " ", type_text),
            stake=_money(stake_match.group(1)) if stake_match else None,
            to_win=_money(stake_match.group(2)) if stake_match else None,
            is_free_play="[FREE PLAY]" in upper,
            is_live="LIVE BETTING" in upper or "LIVE BET" in upper,
            status_word=status_match.group(1).lower() if status_match else None,
        )

    # -- blocks -----------------------------------------------------------

    def _parse_block(self, block: str, now: datetime) -> tuple[Wager, list[str]]:
        lines = [line.rstrip() for line in block.splitlines() if line.strip()]
        header = self._read_header(lines, block)
        body = lines[1:]
        upper_type = f"{header.type_text} {block}".upper()

        if "PLAYER PROPS" in upper_type and ("PARLAY" in upper_type or len([l for l in body if SUB_SLIP.match(l.strip())]) > 1):
            wager = self._prop_parlay(header, body)
        elif "PLAYER PROPS" in upper_type:
            wager = self._prop_straight(header, body, block)
        elif re.search(r"\bTEAS", upper_type):
            wager = self._multi_leg(header, body, BetKind.TEASER)
        elif "PARLAY" in upper_type:
            wager = self._multi_leg(header, body, BetKind.PARLAY)
        elif any(LIVE_LINE.match(line.strip()) for line in body):
            wager = self._live(header, body, block)
        else:
            wager = self._straight(header, body, block)

        warnings = self._finish(wager, header, now)
        return wager, warnings

    def _straight(self, header: _Header, body: list[str], block: str) -> Wager:
        for position, raw in enumerate(body):
            match = SLIP_LINE.match(raw.strip())
            if not match:
                continue
            rest = match.group("rest").strip()
            rotation = ROTATION_LINE.match(rest)
            if rotation:
                detail = rotation.group("detail")
            else:
                # Fight cards put the event on the bracket line and the pick on the next one.
                follow = body[position + 1].strip() if position + 1 < len(body) else ""
                follow_match = ROTATION_LINE.match(follow)
                if not follow_match:
                    continue
                detail = follow_match.group("detail")
            classified = classify_selection(detail)
            if classified is None:
                raise BlockParseError(f"unrecognized selection: {detail[:60]}")
            sport = resolve_sport(match.group("sport"))
            if sport is Sport.UNCLASSIFIED:
                sport = resolve_sport(block)
            start = parse_slip_time(match.group("when"), self.tz)
            status = LINE_STATUS.search(raw) or LINE_STATUS.search(detail)
            if status and header.status_word is None:
                header.status_word = status.group(1).lower()
            return self._single(header, classified, sport, start, strip_annotations(detail))
        raise BlockParseError("unrecognized bet layout")

    def _live(self, header: _Header, body: list[str], block: str) -> Wager:
        for raw in body:
            match = LIVE_LINE.match(raw.strip())
            if not match:
                continue
            parts = [part.strip() for part in match.group("body").split("/")]
            classified = classify_selection(parts[-1])
            if classified is None:
                raise BlockParseError(f"unrecognized live selection: {parts[-1][:60]}")
            teams = split_matchup(parts[0])
            if teams:
                classified.matchup = Matchup(team_a=teams[0], team_b=teams[1])
            sport = resolve_sport(block)
            return self._single(header, classified, sport, None, parts[-1])
        raise BlockParseError("unrecognized live bet layout")

    def _prop_straight(self, header: _Header, body: list[str], block: str) -> Wager:
        game_line = _find_game_line(body)
        for raw in body:
            candidate = raw.split("\t")[0].strip()
            classified = classify_selection(candidate)
            if classified is None or classified.kind is not BetKind.PLAYER_PROP:
                continue
            teams = split_matchup(game_line) if game_line else None
            if teams:
                classified.matchup = Matchup(team_a=teams[0], team_b=teams[1])
            sport = resolve_sport(f"{game_line or ''}\n{candidate}")
            if sport is Sport.UNCLASSIFIED:
                sport = resolve_sport(block)
            return self._single(header, classified, sport, None, candidate)
        raise BlockParseError("player prop block without a recognizable prop line")

    def _single(
        self,
        header: _Header,
        classified: Classified,
        sport: Sport,
        start: datetime | None,
        description: str,
    ) -> Wager:
        classified.selection.description = description
        matchup = classified.matchup
        return Wager(
            id=header.ticket or uuid.uuid4().hex[:12],
            sport=sport,
            kind=classified.kind,
            matchup=Matchup(team_a=matchup.team_a, team_b=matchup.team_b, start_time=start),
            selection=classified.selection,
            stake=header.stake or 0.0,
            potential_payout=header.to_win or 0.0,
            opening_odds=classified.odds,
            is_free_play=header.is_free_play,
            is_live_bet=header.is_live,
            user_id=self.user_id,
            placed_at=header.placed_at,
        )

    def _multi_leg(self, header: _Header, body: list[str], kind: BetKind) -> Wager:
        legs: list[WagerLeg] = []
        for raw in body:
            match = SLIP_LINE.match(raw.strip())
            if not match:
                continue
            rotation = ROTATION_LINE.match(match.group("rest").strip())
            detail = rotation.group("detail") if rotation else match.group("rest")
            classified = classify_selection(detail)
            if classified is None:
                raise BlockParseError(f"unrecognized leg: {detail[:60]}")
            sport = resolve_sport(match.group("sport"))
            if sport is Sport.UNCLASSIFIED:
                sport = resolve_sport(detail)
            status = LINE_STATUS.search(raw)
            teaser_points = classified.teaser_points
            if kind is BetKind.TEASER and teaser_points is None:
                teaser_points = _header_teaser_points(header.type_text, sport)
            legs.append(
                self._leg(len(legs), classified, sport, parse_slip_time(match.group("when"), self.tz),
                          strip_annotations(detail), status.group(1) if status else None, teaser_points)
            )
        if not legs:
            raise BlockParseError(f"{kind.value.lower()} without legs")
        return self._assemble_multi(header, kind, legs)

    def _prop_parlay(self, header: _Header, body: list[str]) -> Wager:
        legs: list[WagerLeg] = []
        chunks: list[list[str]] = []
        for raw in body:
            line = raw.strip()
            if SUB_SLIP.match(line):
                chunks.append([])
            elif chunks:
                chunks[-1].append(line.split("\t")[0].strip())
        for chunk in chunks:
            game_line = _find_game_line(chunk)
            for candidate in chunk:
                if candidate == game_line or BLOCK_STATUS.match(candidate) or "$" in candidate:
                    continue
                classified = classify_selection(candidate)
                if classified is None:
                    continue
                teams = split_matchup(game_line) if game_line else None
                if teams:
                    classified.matchup = Matchup(team_a=teams[0], team_b=teams[1])
                sport = resolve_sport(f"{game_line or ''}\n{candidate}")
                # Prop parlay legs carry no start time of their own; the placement time stands in.
                legs.append(self._leg(len(legs), classified, sport, header.placed_at, candidate, None, None))
                break
        if not legs:
            raise BlockParseError("player prop parlay without legs")
        return self._assemble_multi(header, BetKind.PARLAY, legs)

    def _leg(
        self,
        index: int,
        classified: Classified,
        sport: Sport,
        start: datetime | None,
        description: str,
        status_tag: str | None,
        teaser_points: float | None,
    ) -> WagerLeg:
        classified.selection.description = description
        return WagerLeg(
            index=index,
            sport=sport,
            kind=classified.kind,
            selection=classified.selection,
            matchup=Matchup(classified.matchup.team_a, classified.matchup.team_b, start),
            status=LegStatus(status_tag.capitalize()) if status_tag else LegStatus.PENDING,
            teaser_points=teaser_points,
            odds=classified.odds,
        )

    def _assemble_multi(self, header: _Header, kind: BetKind, legs: list[WagerLeg]) -> Wager:
        sports = {leg.sport for leg in legs}
        sport = sports.pop() if len(sports) == 1 else Sport.MULTISPORT
        starts = [leg.matchup.start_time for leg in legs if leg.matchup.start_time]
        notes = [format_leg(leg, self.tz) for leg in legs]
        notes.append(f"League: {sport.value}")
        notes.append(f"Category: {kind.value}")
        return Wager(
            id=header.ticket or uuid.uuid4().hex[:12],
            sport=sport,
            kind=kind,
            matchup=Matchup(start_time=min(starts) if starts else None),
            selection=Selection(description=header.type_text or f"{len(legs)} leg {kind.value.lower()}"),
            stake=header.stake or 0.0,
            potential_payout=header.to_win or 0.0,
            notes="\n".join(notes),
            is_free_play=header.is_free_play,
            is_live_bet=header.is_live,
            user_id=self.user_id,
            placed_at=header.placed_at,
        )

    # -- finishing --------------------------------------------------------

    def _finish(self, wager: Wager, header: _Header, now: datetime) -> list[str]:
        warnings: list[str] = []
        if header.stake is None:
            warnings.append("stake missing")
        if wager.opening_odds is None and header.stake and header.to_win:
            wager.opening_odds = payout_to_american(header.stake, header.to_win)
        if wager.opening_odds is None:
            warnings.append("odds missing")
        if not header.to_win and header.stake and wager.opening_odds is not None:
            wager.potential_payout = potential_payout(header.stake, wager.opening_odds)
        if not wager.kind.is_multi_leg and not wager.matchup.teams:
            warnings.append("game unidentified")
        if not wager.kind.is_multi_leg:
            category = "Live" if header.is_live else "Straight"
            wager.notes = f"League: {wager.sport.value}\nCategory: {category}"
        result = _RESULT_WORDS.get(header.status_word or "")
        if result is not None:
            wager.settle(result, now)
        return warnings


def _find_game_line(lines: list[str]) -> str | None:
    for line in lines:
        text = line.strip()
        if "[" in text or re.search(r"\b(Over|Under)\b", text, re.IGNORECASE):
            continue
        if split_matchup(text) and not re.search(r"\d+\+", text):
            return text
    return None


def _header_teaser_points(type_text: str, sport: Sport) -> float | None:
    pattern = TEASER_HEADER_POINTS.get(sport.family)
    if pattern is None:
        return None
    match = pattern.search(type_text.upper())
    return float(match.group(1)) if match else None


def parse_slips(text: str, tz: ZoneInfo | None = None, user_id: str | None = None) -> ParseResult:
    """Convenience wrapper around ``WagerParser.parse``."""

    return WagerParser(tz=tz, user_id=user_id).parse(text)
