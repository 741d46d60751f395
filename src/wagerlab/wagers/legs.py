"""Read and write parlay/teaser legs stored as annotated lines in wager notes.

One leg per line::

    [Dec-01-2025 08:16 PM] [NFL] NE PATRIOTS +.5-110 (B+7.5) [Won]

Lines that do not look like a leg (``League:``, ``Auto-settled:`` and so on)
are left untouched.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Mapping
from zoneinfo import ZoneInfo

from wagerlab.wagers.normalizer import resolve_sport
from wagerlab.wagers.selection import MATCHUP_PARENS, classify_selection, normalize_fractions
from wagerlab.wagers.types import LegStatus, Matchup, Sport, WagerLeg

SLIP_DATE_FORMAT = "%b-%d-%Y"
SLIP_DATETIME_FORMAT = "%b-%d-%Y %I:%M %p"

LEG_LINE = re.compile(
    r"^\s*\[(?P<when>[A-Z][a-z]{2}-\d{2}-\d{4}(?:\s+\d{1,2}:\d{2}\s*[AP]M)?|Unknown)\]\s*"
    r"\[(?P<sport>[^\]]+)\]\s*(?:-\s*)?(?:\[\d+\]\s*)?"
    r"(?P<detail>.+?)\s*\[(?P<status>pending|live|won|lost|push)\](?:\s*\(Score:[^)]*\))?\s*$",
    re.IGNORECASE,
)


def parse_slip_time(text: str, tz: ZoneInfo) -> datetime | None:
    """Parse ``Mon-DD-YYYY[ HH:MM AM]`` in the slip's zone and return it as UTC."""

    text = re.sub(r"\s+", " ", text.strip())
    for fmt in (SLIP_DATETIME_FORMAT, SLIP_DATE_FORMAT):
        try:
            local = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return local.replace(tzinfo=tz).astimezone(timezone.utc)
    return None


def format_slip_time(value: datetime, tz: ZoneInfo) -> str:
    return value.astimezone(tz).strftime(SLIP_DATETIME_FORMAT)


def _status_from_tag(tag: str) -> LegStatus:
    return LegStatus(tag.strip().capitalize())


def format_leg(leg: WagerLeg, tz: ZoneInfo) -> str:
    when = format_slip_time(leg.matchup.start_time, tz) if leg.matchup.start_time else "Unknown"
    detail = leg.selection.description
    if leg.matchup.team_a and leg.matchup.team_b and not MATCHUP_PARENS.search(detail):
        detail = f"{detail} ({leg.matchup.team_a} vs {leg.matchup.team_b})"
    if leg.teaser_points and "(B" not in detail:
        detail = f"{detail} (B+{leg.teaser_points:g})"
    return f"[{when}] [{leg.sport.value}] {detail} [{leg.status.value}]"


def parse_leg_line(line: str, index: int, tz: ZoneInfo) -> WagerLeg | None:
    match = LEG_LINE.match(normalize_fractions(line))
    if not match:
        return None
    detail = match.group("detail").strip()
    classified = classify_selection(detail)
    if classified is None:
        return None
    sport_tag = match.group("sport").strip()
    sport = resolve_sport(sport_tag)
    if sport is Sport.UNCLASSIFIED:
        sport = resolve_sport(detail)
    matchup = classified.matchup
    classified.selection.description = detail
    return WagerLeg(
        index=index,
        sport=sport,
        kind=classified.kind,
        selection=classified.selection,
        matchup=Matchup(
            team_a=matchup.team_a,
            team_b=matchup.team_b,
            start_time=parse_slip_time(match.group("when"), tz),
        ),
        status=_status_from_tag(match.group("status")),
        teaser_points=classified.teaser_points,
        odds=classified.odds,
    )


def parse_legs(notes: str | None, tz: ZoneInfo) -> list[WagerLeg]:
    """Re-derive ordered legs from a wager's notes."""

    legs: list[WagerLeg] = []
    index = 0
    for line in (notes or "").splitlines():
        if not LEG_LINE.match(normalize_fractions(line)):
            continue
        # indices follow every leg line so update_leg_statuses stays aligned
        leg = parse_leg_line(line, index, tz)
        index += 1
        if leg is not None:
            legs.append(leg)
    return legs


def update_leg_statuses(notes: str, statuses: Mapping[int, LegStatus]) -> str:
    """Rewrite the status tag of the given legs (by leg index), keeping other lines verbatim."""

    lines = notes.splitlines()
    leg_index = 0
    for position, line in enumerate(lines):
        match = LEG_LINE.match(normalize_fractions(line))
        if not match:
            continue
        status = statuses.get(leg_index)
        if status is not None:
            start, end = match.span("status")
            normalized = normalize_fractions(line)
            lines[position] = f"{normalized[:start]}{status.value}{normalized[end:]}"
        leg_index += 1
    return "\n".join(lines)
