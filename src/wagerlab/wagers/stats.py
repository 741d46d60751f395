"""Map slip stat wording onto canonical box-score keys."""

from __future__ import annotations

import re

_COMBO_SHORTHANDS: dict[str, tuple[str, ...]] = {
    "pra": ("points", "rebounds", "assists"),
    "pts+reb+ast": ("points", "rebounds", "assists"),
    "pr": ("points", "rebounds"),
    "pa": ("points", "assists"),
    "ra": ("rebounds", "assists"),
    "sb": ("steals", "blocks"),
}

# Ordered: multi-word football and baseball phrases before the generic basketball words.
_ALIASES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"pass(?:ing)? (?:yards|yds)|pass yds"), "passing_yards"),
    (re.compile(r"pass(?:ing)? (?:tds?|touchdowns?)"), "passing_touchdowns"),
    (re.compile(r"pass(?:ing)? attempts?|pass att"), "passing_attempts"),
    (re.compile(r"(?:pass )?completions?|pass comp"), "completions"),
    (re.compile(r"interceptions?|\bints?\b"), "interceptions"),
    (re.compile(r"rush(?:ing)? (?:yards|yds)"), "rushing_yards"),
    (re.compile(r"rush(?:ing)? attempts?|carries|rush att"), "rushing_attempts"),
    (re.compile(r"rush(?:ing)? (?:tds?|touchdowns?)"), "rushing_touchdowns"),
    (re.compile(r"rec(?:eiving)? (?:yards|yds)|reception yards"), "receiving_yards"),
    (re.compile(r"rec(?:eiving)? (?:tds?|touchdowns?)"), "receiving_touchdowns"),
    (re.compile(r"receptions?|\bcatches\b"), "receptions"),
    (re.compile(r"(?:anytime )?touchdowns?|\btds?\b"), "touchdowns"),
    (re.compile(r"strikeouts?|\bks?\b"), "strikeouts"),
    (re.compile(r"hits allowed"), "hits_allowed"),
    (re.compile(r"earned runs?"), "earned_runs"),
    (re.compile(r"home runs?|\bhrs?\b"), "home_runs"),
    (re.compile(r"total bases|\btb\b"), "total_bases"),
    (re.compile(r"stolen bases?"), "stolen_bases"),
    (re.compile(r"\brbis?\b|runs batted in"), "rbis"),
    (re.compile(r"\bhits?\b"), "hits"),
    (re.compile(r"\bruns?\b"), "runs"),
    (re.compile(r"shots? on goal|\bsog\b"), "shots_on_goal"),
    (re.compile(r"\bsaves?\b"), "saves"),
    (re.compile(r"\bgoals?\b"), "goals"),
    (re.compile(r"three|3pt|3-pointers?|3 pointers?|\b3pm\b|\bfg3m?\b"), "threes"),
    (re.compile(r"free throws?|\bftm?\b"), "free_throws"),
    (re.compile(r"\bpts\b|\bpoints?\b"), "points"),
    (re.compile(r"\breb\b|\brebs\b|rebounds?"), "rebounds"),
    (re.compile(r"\bast\b|\basts\b|assists?"), "assists"),
    (re.compile(r"\bstl\b|steals?"), "steals"),
    (re.compile(r"\bblk\b|blocks?|blocked shots"), "blocks"),
    (re.compile(r"turnovers?|\btov?\b"), "turnovers"),
]

_NOISE = re.compile(r"\b(?:total(?! bases)|player|team|made|alt|alternate)\b")


def _clean(text: str) -> str:
    value = text.lower().replace("&", "+")
    value = _NOISE.sub(" ", value)
    return re.sub(r"\s+", " ", value).strip()


def resolve_stat_keys(stat_text: str | None) -> tuple[str, ...] | None:
    """Return the canonical keys summed for a stat phrase, or None when unknown.

    ``"Pts + Reb + Ast"`` and ``"PRA"`` both resolve to
    ``("points", "rebounds", "assists")``.
    """

    if not stat_text:
        return None
    cleaned = _clean(stat_text)
    compact = cleaned.replace(" ", "")
    if compact in _COMBO_SHORTHANDS:
        return _COMBO_SHORTHANDS[compact]
    parts = [part.strip() for part in cleaned.split("+") if part.strip()]
    if not parts:
        return None
    # "Rush + Rec Yards" shares the unit across parts.
    unit = re.search(r"\b(yards|yds|tds|touchdowns)$", parts[-1])
    if unit and len(parts) > 1:
        parts = [part if re.search(r"\b(yards|yds|tds|touchdowns)$", part) else f"{part} {unit.group(1)}" for part in parts]
    keys: list[str] = []
    for part in parts:
        key = _alias(part)
        if key is None:
            return None
        keys.append(key)
    return tuple(keys)


def _alias(part: str) -> str | None:
    for pattern, key in _ALIASES:
        if pattern.search(part):
            return key
    return None


def market_family(keys: tuple[str, ...] | None) -> str:
    """Collapse stat keys into the market family used for line adjustment."""

    if not keys:
        return "default"
    if set(keys) == {"points", "rebounds", "assists"}:
        return "pra"
    if len(keys) > 1:
        return "combo"
    return keys[0]


def stat_value(stats: dict[str, float], keys: tuple[str, ...]) -> float | None:
    """Sum the requested fields; None when any constituent is missing."""

    total = 0.0
    for key in keys:
        value = stats.get(key)
        if value is None:
            return None
        total += value
    return total
