"""Resolve free-text sport and team identifiers into canonical codes.

Sport resolution runs a fixed priority chain so that narrower vocabularies win
over broader ones: explicit tags, league/event markers, team dictionaries
(college first, then NHL, NBA, NFL, MLB), parenthesised abbreviations, stat
keywords, and finally position codes. Nothing here raises; text that cannot be
placed resolves to ``Sport.UNCLASSIFIED``.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Iterable

from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)

_TAGS: dict[str, Sport] = {
    "NFL": Sport.NFL,
    "NBA": Sport.NBA,
    "MLB": Sport.MLB,
    "NHL": Sport.NHL,
    "CFB": Sport.NCAAF,
    "NCAAF": Sport.NCAAF,
    "CBB": Sport.NCAAB,
    "NCAAB": Sport.NCAAB,
    "WCBB": Sport.WNCAAB,
    "WNCAAB": Sport.WNCAAB,
    "WNBA": Sport.WNBA,
    "MLS": Sport.MLS,
    "MU": Sport.UFC,
    "UFC": Sport.UFC,
    "MMA": Sport.UFC,
}

_MMA_MARKERS = re.compile(r"\bUFC\b|BELLATOR|\bPFL\b|ONE CHAMPIONSHIP")
_ESPORTS_MARKER = re.compile(r"E-?SPORTS")
_ESPORTS_TITLES: list[tuple[re.Pattern[str], Sport]] = [
    (re.compile(r"\bCS ?2\b|COUNTER-STRIKE"), Sport.CS2),
    (re.compile(r"\bDOTA\b|DOTA ?2"), Sport.DOTA2),
    (re.compile(r"LEAGUE OF LEGENDS|\bLOL\b"), Sport.LOL),
    (re.compile(r"VALORANT"), Sport.VALORANT),
]
_MULTISPORT_MARKER = re.compile(r"MULTI-?SPORT")

_COLLEGE_NAMES = [
    "ALABAMA", "AUBURN", "GEORGIA", "FLORIDA", "FLORIDA STATE", "LSU", "TENNESSEE", "TEXAS A&M",
    "NOTRE DAME", "UCLA", "USC", "PENN STATE", "OREGON", "OREGON STATE", "TEXAS", "OKLAHOMA",
    "OKLAHOMA STATE", "MIAMI", "MIAMI OHIO", "WISCONSIN", "IOWA", "IOWA STATE", "NEBRASKA",
    "KANSAS", "KANSAS STATE", "SOUTH CAROLINA", "NORTH CAROLINA", "NC STATE", "VIRGINIA",
    "VIRGINIA TECH", "WEST VIRGINIA", "BAYLOR", "SMU", "TCU", "TEXAS TECH", "WASHINGTON STATE",
    "STANFORD", "CALIFORNIA", "ARIZONA", "ARIZONA STATE", "KENTUCKY", "VANDERBILT", "OLE MISS",
    "MISSISSIPPI STATE", "ARKANSAS", "MISSOURI", "CLEMSON", "LOUISVILLE", "DUKE", "WAKE FOREST",
    "BOSTON COLLEGE", "SYRACUSE", "GEORGIA TECH", "UTAH", "UTAH STATE", "COLORADO",
    "COLORADO STATE", "MICHIGAN", "MICHIGAN STATE", "OHIO STATE", "RUTGERS", "MARYLAND",
    "INDIANA", "PURDUE", "ILLINOIS", "NORTHWESTERN", "MINNESOTA GOLDEN GOPHERS", "BOISE STATE",
    "FRESNO STATE", "SAN DIEGO STATE", "SAN JOSE STATE", "NEVADA", "UNLV", "HAWAII", "WYOMING",
    "AIR FORCE", "ARMY", "NAVY", "TULANE", "TULSA", "MEMPHIS", "TEMPLE", "UCF", "USF",
    "EAST CAROLINA", "CINCINNATI", "HOUSTON", "JAMES MADISON", "APPALACHIAN STATE",
    "COASTAL CAROLINA", "GEORGIA SOUTHERN", "SOUTH ALABAMA", "LOUISIANA", "ARKANSAS STATE",
    "TEXAS STATE", "WESTERN MICHIGAN", "CENTRAL MICHIGAN", "EASTERN MICHIGAN",
    "NORTHERN ILLINOIS", "BALL STATE", "BOWLING GREEN", "AKRON", "KENT STATE", "TOLEDO",
    "NORTH TEXAS", "UTEP", "UTSA", "CHARLOTTE", "FIU", "FAU", "MARSHALL", "MIDDLE TENNESSEE",
    "OLD DOMINION", "WESTERN KENTUCKY", "NEW MEXICO STATE", "GONZAGA", "VILLANOVA", "CREIGHTON",
    "UCONN", "XAVIER", "BUTLER", "MARQUETTE", "SETON HALL", "PROVIDENCE", "ST. JOHN'S",
    "GEORGETOWN", "DEPAUL", "SAINT MARY'S", "DAYTON", "VCU",
]
_COLLEGE_PATTERN = re.compile(
    r"(?<![A-Z])(?:" + "|".join(re.escape(name) for name in sorted(_COLLEGE_NAMES, key=len, reverse=True)) + r")(?![A-Z])"
)

# Pro city phrases that contain a college name.
_PRO_CITY_PHRASES = ["KANSAS CITY", "OKLAHOMA CITY", "GOLDEN STATE", "UTAH JAZZ", "UTAH MAMMOTH"]

_PRO_TEAMS: dict[Sport, list[tuple[str, str]]] = {
    Sport.NHL: [
        ("BOSTON", "BRUINS"), ("BUFFALO", "SABRES"), ("DETROIT", "RED WINGS"), ("FLORIDA", "PANTHERS"),
        ("MONTREAL", "CANADIENS"), ("OTTAWA", "SENATORS"), ("TAMPA BAY", "LIGHTNING"),
        ("TORONTO", "MAPLE LEAFS"), ("CAROLINA", "HURRICANES"), ("COLUMBUS", "BLUE JACKETS"),
        ("NEW JERSEY", "DEVILS"), ("NEW YORK", "ISLANDERS"), ("NEW YORK", "RANGERS"),
        ("PHILADELPHIA", "FLYERS"), ("PITTSBURGH", "PENGUINS"), ("WASHINGTON", "CAPITALS"),
        ("CHICAGO", "BLACKHAWKS"), ("COLORADO", "AVALANCHE"), ("DALLAS", "STARS"),
        ("MINNESOTA", "WILD"), ("NASHVILLE", "PREDATORS"), ("ST. LOUIS", "BLUES"),
        ("WINNIPEG", "JETS"), ("UTAH", "MAMMOTH"), ("ANAHEIM", "DUCKS"), ("CALGARY", "FLAMES"),
        ("EDMONTON", "OILERS"), ("LOS ANGELES", "KINGS"), ("SAN JOSE", "SHARKS"),
        ("SEATTLE", "KRAKEN"), ("VANCOUVER", "CANUCKS"), ("VEGAS", "GOLDEN KNIGHTS"),
    ],
    Sport.NBA: [
        ("BOSTON", "CELTICS"), ("BROOKLYN", "NETS"), ("NEW YORK", "KNICKS"), ("PHILADELPHIA", "76ERS"),
        ("TORONTO", "RAPTORS"), ("MILWAUKEE", "BUCKS"), ("CHICAGO", "BULLS"),
        ("CLEVELAND", "CAVALIERS"), ("DETROIT", "PISTONS"), ("INDIANA", "PACERS"),
        ("ATLANTA", "HAWKS"), ("MIAMI", "HEAT"), ("CHARLOTTE", "HORNETS"), ("ORLANDO", "MAGIC"),
        ("WASHINGTON", "WIZARDS"), ("DENVER", "NUGGETS"), ("MINNESOTA", "TIMBERWOLVES"),
        ("OKLAHOMA CITY", "THUNDER"), ("PORTLAND", "TRAIL BLAZERS"), ("UTAH", "JAZZ"),
        ("GOLDEN STATE", "WARRIORS"), ("LA", "CLIPPERS"), ("LOS ANGELES", "CLIPPERS"),
        ("LOS ANGELES", "LAKERS"), ("PHOENIX", "SUNS"), ("SACRAMENTO", "KINGS"),
        ("DALLAS", "MAVERICKS"), ("HOUSTON", "ROCKETS"), ("MEMPHIS", "GRIZZLIES"),
        ("NEW ORLEANS", "PELICANS"), ("SAN ANTONIO", "SPURS"),
    ],
    Sport.NFL: [
        ("BUFFALO", "BILLS"), ("MIAMI", "DOLPHINS"), ("NEW ENGLAND", "PATRIOTS"), ("NEW YORK", "JETS"),
        ("BALTIMORE", "RAVENS"), ("CINCINNATI", "BENGALS"), ("CLEVELAND", "BROWNS"),
        ("PITTSBURGH", "STEELERS"), ("HOUSTON", "TEXANS"), ("INDIANAPOLIS", "COLTS"),
        ("JACKSONVILLE", "JAGUARS"), ("TENNESSEE", "TITANS"), ("DENVER", "BRONCOS"),
        ("KANSAS CITY", "CHIEFS"), ("LAS VEGAS", "RAIDERS"), ("LOS ANGELES", "CHARGERS"),
        ("DALLAS", "COWBOYS"), ("NEW YORK", "GIANTS"), ("PHILADELPHIA", "EAGLES"),
        ("WASHINGTON", "COMMANDERS"), ("CHICAGO", "BEARS"), ("DETROIT", "LIONS"),
        ("GREEN BAY", "PACKERS"), ("MINNESOTA", "VIKINGS"), ("ATLANTA", "FALCONS"),
        ("CAROLINA", "PANTHERS"), ("NEW ORLEANS", "SAINTS"), ("TAMPA BAY", "BUCCANEERS"),
        ("ARIZONA", "CARDINALS"), ("SAN FRANCISCO", "49ERS"), ("LOS ANGELES", "RAMS"),
        ("SEATTLE", "SEAHAWKS"),
    ],
    Sport.MLB: [
        ("BALTIMORE", "ORIOLES"), ("BOSTON", "RED SOX"), ("NEW YORK", "YANKEES"), ("TAMPA BAY", "RAYS"),
        ("TORONTO", "BLUE JAYS"), ("CHICAGO", "WHITE SOX"), ("CLEVELAND", "GUARDIANS"),
        ("DETROIT", "TIGERS"), ("KANSAS CITY", "ROYALS"), ("MINNESOTA", "TWINS"),
        ("HOUSTON", "ASTROS"), ("LOS ANGELES", "ANGELS"), ("ATHLETICS", "ATHLETICS"),
        ("SEATTLE", "MARINERS"), ("TEXAS", "RANGERS"), ("ATLANTA", "BRAVES"), ("MIAMI", "MARLINS"),
        ("NEW YORK", "METS"), ("PHILADELPHIA", "PHILLIES"), ("WASHINGTON", "NATIONALS"),
        ("CHICAGO", "CUBS"), ("CINCINNATI", "REDS"), ("MILWAUKEE", "BREWERS"),
        ("PITTSBURGH", "PIRATES"), ("ST. LOUIS", "CARDINALS"), ("ARIZONA", "DIAMONDBACKS"),
        ("COLORADO", "ROCKIES"), ("LOS ANGELES", "DODGERS"), ("SAN DIEGO", "PADRES"),
        ("SAN FRANCISCO", "GIANTS"),
    ],
}
_LEAGUE_ORDER = [Sport.NHL, Sport.NBA, Sport.NFL, Sport.MLB]


def _word_pattern(words: Iterable[str]) -> re.Pattern[str]:
    ordered = sorted(set(words), key=len, reverse=True)
    return re.compile(r"(?<![A-Z0-9])(?:" + "|".join(re.escape(word) for word in ordered) + r")(?![A-Z0-9])")


def _build_nickname_patterns() -> dict[Sport, re.Pattern[str]]:
    owners: dict[str, set[Sport]] = {}
    for league, teams in _PRO_TEAMS.items():
        for _, nickname in teams:
            owners.setdefault(nickname, set()).add(league)
    patterns = {}
    for league, teams in _PRO_TEAMS.items():
        # Nicknames shared across leagues (Panthers, Kings, Giants...) only count in full-name form.
        unique = [nickname for _, nickname in teams if owners[nickname] == {league}]
        patterns[league] = _word_pattern(unique)
    return patterns


_FULL_NAME_PATTERNS = {
    league: _word_pattern(f"{city} {nickname}" for city, nickname in teams)
    for league, teams in _PRO_TEAMS.items()
}
_ALL_PRO_NAMES = _word_pattern(
    [f"{city} {nickname}" for teams in _PRO_TEAMS.values() for city, nickname in teams] + _PRO_CITY_PHRASES
)
_NICKNAME_PATTERNS = _build_nickname_patterns()

_NFL_ABBREVIATIONS = {
    "ARI", "ATL", "BAL", "BUF", "CAR", "CHI", "CIN", "CLE", "DAL", "DEN", "DET", "GB", "HOU",
    "IND", "JAX", "KC", "LAC", "LAR", "LV", "MIA", "MIN", "NE", "NO", "NYG", "NYJ", "PHI",
    "PIT", "SEA", "SF", "TB", "TEN", "WAS", "WSH",
}
_NBA_ABBREVIATIONS = {
    "ATL", "BOS", "BKN", "CHA", "CHI", "CLE", "DAL", "DEN", "DET", "GS", "GSW", "HOU", "IND",
    "LAC", "LAL", "MEM", "MIA", "MIL", "MIN", "NO", "NOP", "NY", "NYK", "OKC", "ORL", "PHI",
    "PHX", "POR", "SA", "SAC", "SAS", "TOR", "UTA", "UTAH", "WAS", "WSH",
}
_PAREN_ABBREVIATION = re.compile(r"\(([A-Z]{2,4})\)")

_KEYWORDS: list[tuple[str, re.Pattern[str]]] = [
    ("football", re.compile(
        r"TOUCHDOWNS?|\bTDS?\b|PASS(?:ING)? (?:YARDS?|YDS|ATTEMPTS?|COMPLETIONS?)|COMPLETIONS?|"
        r"RUSH(?:ING)? (?:YARDS?|YDS|ATTEMPTS?)|RECEIVING (?:YARDS?|YDS)|REC(?:EPTION)? YARDS|"
        r"RECEPTIONS?|CARRIES|\bCARRY\b|INTERCEPTIONS?|\bSACKS?\b|FIELD GOALS?|QUARTERBACK|"
        r"RUNNING BACK|WIDE RECEIVER|TIGHT END"
    )),
    ("baseball", re.compile(
        r"STRIKEOUTS?|HOME RUNS?|\bRBIS?\b|HITS ALLOWED|EARNED RUNS?|STOLEN BASES?|TOTAL BASES?|"
        r"INNINGS?|PITCHER|OUTS RECORDED|\bHITS\b"
    )),
    ("hockey", re.compile(
        r"SHOTS? ON GOAL|\bSAVES?\b|POWER ?PLAY|GOALIE|GOALTENDER|SHUTOUT|\bGOALS?\b"
    )),
    ("basketball", re.compile(
        r"\bTHREES?\b|3PT|3-POINTERS?|FREE THROWS?|\bDUNKS?\b|ASSISTS?|REBOUNDS?|\bBLOCKS?\b|"
        r"STEALS?|\bPRA\b|\bPTS\b|\bREB\b|\bAST\b|\bPOINTS?\b"
    )),
]
_NFL_POSITIONS = re.compile(r"\b(?:QB|RB|WR|TE|DE|LB|CB)\b")
_MLB_POSITIONS = re.compile(r"\b(?:SP|RP|1B|2B|3B|SS|DH)\b")
_VS_SEPARATOR = re.compile(r"\s(?:VS\.?|VRS|@)\s")

SPORT_DURATIONS_HOURS: dict[Sport, float] = {
    Sport.NFL: 5.0,
    Sport.NCAAF: 5.0,
    Sport.NBA: 2.5,
    Sport.NCAAB: 2.5,
    Sport.WNBA: 2.5,
    Sport.WNCAAB: 2.5,
    Sport.NHL: 2.5,
    Sport.MLB: 3.0,
    Sport.MLS: 2.0,
    Sport.UFC: 6.0,
    Sport.CS2: 2.5,
    Sport.DOTA2: 2.5,
    Sport.LOL: 2.0,
    Sport.VALORANT: 2.0,
    Sport.ESPORTS: 2.5,
}
DEFAULT_DURATION_HOURS = 3.0


def resolve_sport(text: str) -> Sport:
    """Return the canonical sport for a free-text slip fragment."""

    upper = (text or "").upper()
    stripped = upper.strip()

    # 1. explicit tags
    if stripped in _TAGS:
        return _TAGS[stripped]
    for tag in re.findall(r"\[([A-Z]{2,6})\]", upper):
        if tag in _TAGS:
            return _TAGS[tag]

    # 2. league and event markers
    if _MMA_MARKERS.search(upper):
        return Sport.UFC
    esports_flagged = bool(_ESPORTS_MARKER.search(upper))
    for pattern, sport in _ESPORTS_TITLES:
        if pattern.search(upper):
            return sport
    if esports_flagged:
        return Sport.ESPORTS
    if _MULTISPORT_MARKER.search(upper):
        return Sport.MULTISPORT

    # 3. team dictionaries, most specific class first
    without_pros = _ALL_PRO_NAMES.sub(" ", upper)
    if _COLLEGE_PATTERN.search(without_pros):
        return _college_sport(upper)
    for league in _LEAGUE_ORDER:
        if _FULL_NAME_PATTERNS[league].search(upper):
            return league
    for league in _LEAGUE_ORDER:
        if _NICKNAME_PATTERNS[league].search(upper):
            return league
    abbreviation_sport = _sport_from_abbreviations(upper)
    if abbreviation_sport is not None:
        return abbreviation_sport

    # 4. stat vocabulary
    family = _keyword_family(upper)
    if family == "football":
        return Sport.NCAAF if _looks_collegiate(upper) else Sport.NFL
    if family == "basketball":
        if "WNBA" in upper or "WOMEN" in upper:
            return Sport.WNBA
        return Sport.NCAAB if _looks_collegiate(upper) else Sport.NBA
    if family == "baseball":
        return Sport.MLB
    if family == "hockey":
        return Sport.NHL

    # 5. positions
    if _NFL_POSITIONS.search(upper):
        return Sport.NFL
    if _MLB_POSITIONS.search(upper):
        return Sport.MLB

    if _VS_SEPARATOR.search(f" {upper} "):
        logger.debug("Unclassified matchup text: %s", text[:80])
    return Sport.UNCLASSIFIED


def _college_sport(upper: str) -> Sport:
    if "WOMEN" in upper:
        return Sport.WNCAAB
    if _keyword_family(upper) == "basketball" or "CBB" in upper or "NCAAB" in upper:
        return Sport.NCAAB
    return Sport.NCAAF


def _looks_collegiate(upper: str) -> bool:
    if "COLLEGE" in upper or "NCAA" in upper:
        return True
    return bool(_COLLEGE_PATTERN.search(_ALL_PRO_NAMES.sub(" ", upper)))


def _keyword_family(upper: str) -> str | None:
    for family, pattern in _KEYWORDS:
        if pattern.search(upper):
            return family
    return None


def _sport_from_abbreviations(upper: str) -> Sport | None:
    codes = set(_PAREN_ABBREVIATION.findall(upper))
    if not codes:
        return None
    nfl = codes & _NFL_ABBREVIATIONS
    nba = codes & _NBA_ABBREVIATIONS
    if nfl and not nba:
        return Sport.NFL
    if nba and not nfl:
        return Sport.NBA
    if nfl and nba:
        family = _keyword_family(upper)
        if family == "basketball":
            return Sport.NBA
        if family == "football":
            return Sport.NFL
        # Shared codes such as (IND) lean NFL without stat context.
        return Sport.NFL
    return None


_CITY_CONTRACTIONS = [
    ("SANFRANCISCO", "SF"),
    ("LOSANGELES", "LA"),
    ("NEWYORK", "NY"),
    ("NEWENGLAND", "NE"),
    ("NEWORLEANS", "NO"),
    ("NEWJERSEY", "NJ"),
    ("GREENBAY", "GB"),
    ("TAMPABAY", "TB"),
    ("KANSASCITY", "KC"),
    ("LASVEGAS", "LV"),
    ("STLOUIS", "STL"),
    ("SAINTLOUIS", "STL"),
    ("OKLAHOMACITY", "OKC"),
    ("SANANTONIO", "SA"),
    ("GOLDENSTATE", "GS"),
    ("SANDIEGO", "SD"),
    ("SANJOSE", "SJ"),
]


def normalize_team(name: str | None) -> str:
    """Upper-case, strip punctuation and contract multi-word city names."""

    if not name:
        return ""
    value = re.sub(r"[^A-Z0-9]", "", name.upper())
    for long_form, short_form in _CITY_CONTRACTIONS:
        value = value.replace(long_form, short_form)
    return value


def _nickname(name: str) -> str:
    tokens = re.findall(r"[A-Z0-9]+", name.upper())
    return tokens[-1] if len(tokens) >= 2 else ""


def teams_match(a: str | None, b: str | None) -> bool:
    """Bidirectional containment on normalized names, tolerant of abbreviations."""

    left, right = normalize_team(a), normalize_team(b)
    if not left or not right:
        return False
    shorter, longer = sorted((left, right), key=len)
    if len(shorter) <= 3:
        # Bare codes like KC or NE only match as a prefix.
        if longer.startswith(shorter):
            return True
    elif shorter in longer:
        return True
    nick_a, nick_b = _nickname(a or ""), _nickname(b or "")
    return bool(nick_a) and nick_a == nick_b and len(nick_a) >= 4


def team_matches_any(name: str | None, candidates: Iterable[str | None]) -> bool:
    return any(teams_match(name, candidate) for candidate in candidates)


def normalize_player(name: str | None) -> str:
    if not name:
        return ""
    return re.sub(r"[^A-Z]", "", name.upper())


def players_match(a: str | None, b: str | None) -> bool:
    left, right = normalize_player(a), normalize_player(b)
    if not left or not right:
        return False
    return left in right or right in left


def game_duration(sport: Sport) -> timedelta:
    return timedelta(hours=SPORT_DURATIONS_HOURS.get(sport, DEFAULT_DURATION_HOURS))


def game_status(start_time: datetime | None, sport: Sport, now: datetime) -> str:
    """Clock-based status used when no provider data is at hand."""

    if start_time is None:
        return "unknown"
    if now < start_time:
        return "pregame"
    if now < start_time + game_duration(sport):
        return "live"
    return "completed"
