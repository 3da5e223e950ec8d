"""Duration helpers: unit conversion, formatting and exact-match resolution.

HowLongToBeat reports completion times in seconds (``comp_main``,
``comp_plus``, ``comp_100``).  These helpers turn a raw search result list
into a :class:`DurationRecord` expressed in hours.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger('hltb.duration')


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def seconds_to_hours(seconds) -> Optional[float]:
    """Convert a duration in seconds to hours, rounded to 2 decimal places.

    Args:
        seconds: Time in seconds (may be ``None``, numeric strings accepted).

    Returns:
        Hours as a float, or ``None`` when *seconds* is missing, not a
        number, or not positive.
    """
    seconds = _as_number(seconds)
    if not seconds or seconds <= 0:
        return None
    return _round_half_up(seconds / 3600 * 100) / 100


def format_duration(hours) -> Optional[str]:
    """Format decimal hours as ``"12h"`` or ``"12h 30m"``.

    Minutes that round to 60 carry into the hour, so ``1.999`` gives
    ``"2h"`` rather than ``"1h 60m"``.

    Returns ``None`` when *hours* is missing, not a number, or not positive.
    """
    hours = _as_number(hours)
    if not hours or hours <= 0:
        return None

    whole_hours = math.floor(hours)
    minutes = _round_half_up((hours - whole_hours) * 60)
    if minutes == 60:
        whole_hours += 1
        minutes = 0

    if minutes == 0:
        return f"{whole_hours}h"
    return f"{whole_hours}h {minutes}m"


@dataclass(frozen=True)
class DurationRecord:
    """Completion times for a single game, in hours."""
    game_id: Any
    main_story: Optional[float]
    main_extras: Optional[float]
    completionist: Optional[float]

    @property
    def has_data(self) -> bool:
        return any((self.main_story, self.main_extras, self.completionist))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gameId':        self.game_id,
            'mainStory':     self.main_story,
            'mainExtras':    self.main_extras,
            'completionist': self.completionist,
        }


def _normalize_name(name) -> str:
    if name is None:
        return ''
    return str(name).strip().lower()


def find_exact_match(game_name: str, results: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the first result whose ``game_name`` equals *game_name*.

    Comparison is case-insensitive and ignores leading/trailing whitespace.
    There is no fuzzy or partial matching.
    """
    wanted = _normalize_name(game_name)
    for entry in results:
        if _normalize_name(entry.get('game_name')) == wanted:
            return entry
    return None


def summarize_results(results: List[Dict[str, Any]], limit: int = 3) -> List[Dict[str, Any]]:
    """Compact view of the first *limit* results, used for debug logging."""
    return [
        {
            'id':       r.get('game_id'),
            'name':     r.get('game_name'),
            'type':     r.get('game_type'),
            'main':     seconds_to_hours(r.get('comp_main')),
            'plus':     seconds_to_hours(r.get('comp_plus')),
            'complete': seconds_to_hours(r.get('comp_100')),
        }
        for r in results[:limit]
    ]


def resolve_duration(game_name: str, results: Optional[List[Dict[str, Any]]]) -> Optional[DurationRecord]:
    """Map raw search *results* to a :class:`DurationRecord` for *game_name*.

    Args:
        game_name: Name the user searched for.
        results:   Entries from the ``data`` array of a search response.

    Returns:
        The record for the exact match, or ``None`` when there are no
        results, no exact match, or the match has no submitted times.
    """
    results = [r for r in results or [] if isinstance(r, dict)]
    if not results:
        logger.info("No results found for: %s", game_name)
        return None

    logger.debug("Top 3 results: %s", summarize_results(results))

    match = find_exact_match(game_name, results)
    if match is None:
        logger.info("No exact match found for: %s", game_name)
        logger.debug("Available results: %s", [r.get('game_name') for r in results[:5]])
        return None

    logger.info("Exact match found: %s (ID: %s)", match.get('game_name'), match.get('game_id'))

    record = DurationRecord(
        game_id=match.get('game_id'),
        main_story=seconds_to_hours(match.get('comp_main')),
        main_extras=seconds_to_hours(match.get('comp_plus')),
        completionist=seconds_to_hours(match.get('comp_100')),
    )
    if not record.has_data:
        logger.info("No duration data available for: %s", match.get('game_name'))
        return None
    return record
