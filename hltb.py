#!/usr/bin/env python3
"""
hltb - HowLongToBeat lookup tool
Looks up how long a game takes to beat, straight from the command line.

    python3 hltb.py "Mega Man"
    python3 hltb.py "Hollow Knight" --json
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, Optional

from colorama import init, Fore, Style

from hltb_client import HLTBClient

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_USAGE = 2

DEFAULT_CONFIG = {
    'cache_minutes':      60,
    'enabled':            True,
    'base_url':           'https://howlongtobeat.com',
    'request_timeout':    15,
    'navigation_timeout': 30,
    'settle_seconds':     2.0,
    'headless':           True,
    'keep_browser_open':  False,
    'log_level':          'WARNING',
}

_FALSE_VALUES = {'0', 'false', 'no', 'off'}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root ``hltb`` logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logger = logging.getLogger('hltb')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


logger = logging.getLogger('hltb.cli')


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration from a JSON file with environment variable support.

    A missing ``config.json`` (the default path) just yields the defaults;
    a missing file the user asked for explicitly is an error.

    Environment variables take precedence over config file values:
    - HLTB_CACHE_MINUTES overrides cache_minutes
    - HLTB_ENABLED overrides enabled (0/false/no/off disable)
    - HLTB_BASE_URL overrides base_url
    - HLTB_LOG_LEVEL overrides log_level
    """
    config = dict(DEFAULT_CONFIG)
    path = config_path or 'config.json'

    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                config.update(json.load(f))
        except json.JSONDecodeError as e:
            print(f"{Fore.RED}Error parsing config file: {e}")
            sys.exit(EXIT_USAGE)
    elif config_path:
        print(f"{Fore.RED}Error: Config file '{config_path}' not found!")
        print(f"{Fore.YELLOW}Copy 'config_template.json' to 'config.json' to customise settings.")
        sys.exit(EXIT_USAGE)

    cache_minutes = os.getenv('HLTB_CACHE_MINUTES')
    if cache_minutes:
        try:
            config['cache_minutes'] = int(cache_minutes)
        except ValueError:
            logger.warning("Ignoring invalid HLTB_CACHE_MINUTES=%r", cache_minutes)
    enabled = os.getenv('HLTB_ENABLED')
    if enabled:
        config['enabled'] = enabled.strip().lower() not in _FALSE_VALUES
    if os.getenv('HLTB_BASE_URL'):
        config['base_url'] = os.getenv('HLTB_BASE_URL')
    if os.getenv('HLTB_LOG_LEVEL'):
        config['log_level'] = os.getenv('HLTB_LOG_LEVEL')

    return config


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _hours_line(client: HLTBClient, label: str, hours: Optional[float]) -> str:
    if not hours:
        return f"{Fore.YELLOW}{label:<15}{Fore.WHITE}N/A"
    return f"{Fore.YELLOW}{label:<15}{Fore.WHITE}{hours} hours ({client.format_duration(hours)})"


def print_duration(client: HLTBClient, game_name: str, record) -> None:
    """Pretty-print a DurationRecord (or a not-found notice)."""
    print(f"\n{Fore.GREEN}{'=' * 60}")
    print(f"{Fore.CYAN}{Style.BRIGHT}🎮 {game_name}")
    print(f"{Fore.GREEN}{'=' * 60}")
    if record is None:
        print(f"{Fore.RED}❌ No data found")
        print(f"{Fore.YELLOW}The game might not exist on HowLongToBeat "
              f"or the name might not match exactly.")
        return
    print(f"{Fore.YELLOW}{'Game ID:':<15}{Fore.WHITE}{record.game_id}")
    print(_hours_line(client, 'Main Story:', record.main_story))
    print(_hours_line(client, 'Main + Extras:', record.main_extras))
    print(_hours_line(client, 'Completionist:', record.completionist))
    print(f"{Fore.YELLOW}{'HLTB URL:':<15}{Fore.WHITE}{client.game_url(record.game_id)}")
    print(f"{Fore.GREEN}{'=' * 60}\n")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Look up HowLongToBeat completion times for a game',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 hltb.py "Mega Man"                 # Pretty-printed lookup
  python3 hltb.py "Dark Souls" --json        # Machine-readable output
  python3 hltb.py "Celeste" --log-level INFO # Show key extraction progress
        """
    )
    parser.add_argument('game', help='Exact game name (case-insensitive)')
    parser.add_argument(
        '--config', '-c',
        default=None,
        help='Path to config file (default: config.json if present)'
    )
    parser.add_argument(
        '--cache-minutes',
        type=int,
        metavar='N',
        help='How long extracted API keys stay cached (default: 60)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        help='Log level: DEBUG, INFO, WARNING, ERROR (default: WARNING)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )
    parser.add_argument(
        '--headful',
        action='store_true',
        help='Show the browser window used for key extraction'
    )
    parser.add_argument(
        '--keep-browser-open',
        action='store_true',
        help='Reuse one browser process across key extractions'
    )
    return parser


def main(argv=None, client: Optional[HLTBClient] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.cache_minutes is not None:
        if args.cache_minutes < 1:
            print(f"{Fore.RED}Error: --cache-minutes must be at least 1")
            return EXIT_USAGE
        config['cache_minutes'] = args.cache_minutes
    if args.log_level:
        config['log_level'] = args.log_level
    if args.headful:
        config['headless'] = False
    if args.keep_browser_open:
        config['keep_browser_open'] = True

    setup_logging(config.get('log_level', 'WARNING'))

    if client is None:
        client = HLTBClient.from_config(config)
    try:
        record = client.get_game_duration(args.game)
    finally:
        client.destroy()

    if args.json:
        print(json.dumps(record.to_dict() if record else None, indent=2))
    else:
        print_duration(client, args.game, record)

    return EXIT_FOUND if record is not None else EXIT_NOT_FOUND


if __name__ == '__main__':
    sys.exit(main())
