#!/usr/bin/env python3
"""
HLTB Client Interactive Demo
============================
Showcases the client without launching a browser or touching the network.
Run it with:

    python3 demo.py                       # offline showcase
    python3 demo.py --quiet               # minimal output (good for CI)
    python3 demo.py --live                # real lookups for the sample games
    python3 demo.py --live "Celeste"      # real lookup for chosen games

The offline showcase exercises:
  • Duration conversion and formatting
  • Key sniffing from recorded browser requests
  • Credential caching, expiry and forced refresh
  • Exact-match resolution of search results
"""

import argparse
import sys
import time

from colorama import Fore, Style, init as _colorama_init

from app.services.credential_service import CredentialCache, CredentialPair
from app.services.duration_service import (
    format_duration,
    resolve_duration,
    seconds_to_hours,
)
from app.services.key_extractor import (
    CapturedKeys,
    KeyExtractor,
    NetworkObserver,
    extract_keys_from_requests,
)

_colorama_init(autoreset=True)
_GREEN  = Fore.GREEN
_CYAN   = Fore.CYAN
_YELLOW = Fore.YELLOW
_RED    = Fore.RED
_RESET  = Style.RESET_ALL

# ---------------------------------------------------------------------------
# Demo dataset
# ---------------------------------------------------------------------------
SAMPLE_GAMES = [
    'The Legend of Zelda: Breath of the Wild',
    'Super Mario Odyssey',
    'Hollow Knight',
    'Mega Man',
    'Dark Souls',
]

# What /api/locate returns for "dark souls" (trimmed)
DEMO_RESULTS = [
    {"game_id": 2224,  "game_name": "Dark Souls",                 "game_type": "game",
     "comp_main": 153180, "comp_plus": 213120, "comp_100": 352800},
    {"game_id": 2225,  "game_name": "Dark Souls II",              "game_type": "game",
     "comp_main": 158400, "comp_plus": 229320, "comp_100": 384480},
    {"game_id": 2226,  "game_name": "Dark Souls III",             "game_type": "game",
     "comp_main": 115200, "comp_plus": 169200, "comp_100": 363600},
    {"game_id": 61337, "game_name": "Dark Souls: Nightfall",      "game_type": "mod",
     "comp_main": 0,      "comp_plus": 0,      "comp_100": 0},
]

# Requests a browser issues while loading https://howlongtobeat.com/?q=test
RECORDED_REQUESTS = [
    {"url": "https://howlongtobeat.com/_next/static/chunks/app.js", "headers": {}},
    {"url": "https://howlongtobeat.com/api/locate/4b4cbe570602c88660f7df8ea0cb6b6e",
     "headers": {"content-type": "application/json"}},
    {"url": "https://howlongtobeat.com/api/search",
     "headers": {"content-type": "application/json", "x-auth-token": "demo-auth-token"}},
]


class ScriptedObserver(NetworkObserver):
    """Observer that replays canned captures instead of driving a browser."""

    def __init__(self, captures):
        self._captures = list(captures)
        self.calls = 0

    def capture(self, page_url, timeout):
        self.calls += 1
        if self._captures:
            return self._captures.pop(0)
        return CapturedKeys()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sep(char: str = "─", width: int = 60) -> str:
    return char * width


def _header(text: str) -> None:
    print()
    print(_CYAN + _sep("═") + _RESET)
    print(_CYAN + f"  {text}" + _RESET)
    print(_CYAN + _sep("═") + _RESET)


def _section(text: str) -> None:
    print()
    print(_YELLOW + _sep("─") + _RESET)
    print(_YELLOW + f"  {text}" + _RESET)
    print(_YELLOW + _sep("─") + _RESET)


def _ok(msg: str) -> None:
    print(_GREEN + f"  ✓ {msg}" + _RESET)


def _info(msg: str) -> None:
    print(f"    {msg}")


def _pause(quiet: bool, seconds: float = 0.4) -> None:
    if not quiet:
        time.sleep(seconds)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def demo_formatting(quiet: bool) -> None:
    _section("1. Duration conversion")
    for seconds in (3600, 9996, 45000, 0):
        hours = seconds_to_hours(seconds)
        _info(f"{seconds:>6}s → {hours} h → {format_duration(hours) or 'N/A'}")
    _ok("Zero and negative durations are reported as unknown")
    _pause(quiet)


def demo_sniffing(quiet: bool) -> None:
    _section("2. Key sniffing")
    keys = extract_keys_from_requests(RECORDED_REQUESTS)
    _info(f"Search key: {keys.search_key}")
    _info(f"Auth token: {keys.auth_token}")
    _ok(f"Captured {sum(1 for k in keys if k)} of 2 credentials from {len(RECORDED_REQUESTS)} requests")
    _pause(quiet)


def demo_cache(quiet: bool) -> None:
    _section("3. Credential cache")
    now = [1_000_000.0]
    observer = ScriptedObserver([
        CapturedKeys('4b4cbe570602c88660f7df8ea0cb6b6e', 'demo-auth-token'),
        CapturedKeys('9f1c0de2a7b34e55', None),
    ])
    pair = CredentialPair()
    cache = CredentialCache(KeyExtractor(observer), pair, cache_minutes=60, clock=lambda: now[0])

    cache.get_valid_credentials()
    cache.get_valid_credentials()
    _ok(f"Two lookups, {observer.calls} browser pass (second served from cache)")

    now[0] += 61 * 60
    keys = cache.get_valid_credentials()
    _info(f"After 61 minutes: search key {keys.search_key}, auth token {keys.auth_token}")
    _ok(f"Expired keys triggered pass #{observer.calls}; the auth token kept its old value")

    cache.invalidate()
    _ok(f"invalidate() cleared the pair (has_any={pair.has_any})")
    _pause(quiet)


def demo_resolution(quiet: bool) -> None:
    _section("4. Exact-match resolution")
    for query in ("dark souls", "  DARK SOULS ", "Dark Souls 2", "Dark Souls: Nightfall"):
        record = resolve_duration(query, DEMO_RESULTS)
        if record is None:
            print(_RED + f"  ✗ {query!r} → no usable match" + _RESET)
        else:
            _ok(f"{query!r} → #{record.game_id}: main {format_duration(record.main_story)}, "
                f"extras {format_duration(record.main_extras)}, "
                f"100% {format_duration(record.completionist)}")
    _pause(quiet)


def run_demo(quiet: bool = False) -> None:
    _header("HLTB Client Demo (offline)")
    demo_formatting(quiet)
    demo_sniffing(quiet)
    demo_cache(quiet)
    demo_resolution(quiet)
    _header("Done!")


def run_live(games) -> int:
    """Look up *games* against the real site. Returns the number found."""
    from hltb_client import HLTBClient

    found = 0
    with HLTBClient() as hltb:
        for game_name in games:
            print(f"\n🔍 Searching: {game_name}")
            print(_sep("-", 50))
            duration = hltb.get_game_duration(game_name)
            if duration is None:
                print(_RED + f"❌ Not found: {game_name}" + _RESET)
                continue
            found += 1
            print(_GREEN + f"✅ Found: {game_name}" + _RESET)
            _info(f"Main Story:    {hltb.format_duration(duration.main_story) or 'N/A'}")
            _info(f"Main + Extras: {hltb.format_duration(duration.main_extras) or 'N/A'}")
            _info(f"Completionist: {hltb.format_duration(duration.completionist) or 'N/A'}")
            _info(f"URL: {hltb.game_url(duration.game_id)}")
    return found


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="HLTB client showcase")
    parser.add_argument('--quiet', '-q', action='store_true', help='Skip pauses between sections')
    parser.add_argument('--live', nargs='*', metavar='GAME',
                        help='Run real lookups (default: the sample game list)')
    args = parser.parse_args(argv)

    if args.live is not None:
        run_live(args.live or SAMPLE_GAMES)
    else:
        run_demo(quiet=args.quiet)
    return 0


if __name__ == '__main__':
    sys.exit(main())
