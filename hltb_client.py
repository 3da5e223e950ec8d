"""
hltb_client.py
==============
Client for HowLongToBeat game-completion times.

HowLongToBeat has no documented API.  Its front-end talks to two endpoints,
both guarded by short-lived credentials that rotate periodically:

    POST https://howlongtobeat.com/api/locate/<search_key>
    POST https://howlongtobeat.com/api/search        (header x-auth-token)

The credentials are harvested by watching a headless browser load the site
(see :mod:`app.services.key_extractor`) and cached for ``cache_minutes``.
The locate endpoint is tried first.  A 404 from it means the search key was
rejected: the cache is invalidated, the keys are extracted once more and
the locate call is retried a single time before falling back to
``/api/search``.

Usage
-----
::

    from hltb_client import HLTBClient

    with HLTBClient(cache_minutes=60) as hltb:
        duration = hltb.get_game_duration("Hollow Knight")
        # DurationRecord(game_id=26286, main_story=26.93, ...)
        hltb.format_duration(duration.main_story)
        # '26h 56m'
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from app.exceptions import (
    HLTBAPIError,
    HLTBCredentialsError,
    HLTBError,
    HLTBExtractionError,
    HLTBNoMethodsError,
)
from app.services.credential_service import (
    DEFAULT_CACHE_MINUTES,
    CredentialCache,
    CredentialPair,
)
from app.services.duration_service import (
    DurationRecord,
    format_duration,
    resolve_duration,
    seconds_to_hours,
)
from app.services.key_extractor import (
    BASE_URL,
    USER_AGENT,
    KeyExtractor,
    NetworkObserver,
    PlaywrightObserver,
)

__all__ = [
    'HLTBClient',
    'HLTBError',
    'HLTBAPIError',
    'HLTBCredentialsError',
    'HLTBExtractionError',
    'HLTBNoMethodsError',
    'build_search_payload',
]

logger = logging.getLogger('hltb.client')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_DEFAULT_TIMEOUT = 15             # seconds, per search request
_DEFAULT_NAVIGATION_TIMEOUT = 30  # seconds, browser page load
_HTTP_NOT_FOUND = 404


def build_search_payload(game_name: str) -> Dict[str, Any]:
    """Return the JSON body both search endpoints accept.

    The search terms are the lower-cased, whitespace-separated words of
    *game_name*; every other option mirrors what the site itself sends.
    """
    return {
        'searchType':  'games',
        'searchTerms': game_name.strip().lower().split(),
        'searchPage':  1,
        'size':        20,
        'searchOptions': {
            'games': {
                'userId':        0,
                'platform':      '',
                'sortCategory':  'popular',
                'rangeCategory': 'main',
                'rangeTime':     {'min': None, 'max': None},
                'gameplay': {
                    'perspective': '',
                    'flow':        '',
                    'genre':       '',
                    'difficulty':  '',
                },
                'rangeYear': {'min': '', 'max': ''},
                'modifier':  '',
            },
            'users': {'sortCategory': 'postcount'},
            'lists': {'sortCategory': 'follows'},
            'filter':     '',
            'sort':       0,
            'randomizer': 0,
        },
        'useCache': False,
    }


class HLTBClient:
    """HowLongToBeat client with automatic key extraction and recovery."""

    def __init__(
        self,
        cache_minutes: float = DEFAULT_CACHE_MINUTES,
        enabled: bool = True,
        base_url: str = BASE_URL,
        timeout: int = _DEFAULT_TIMEOUT,
        observer: Optional[NetworkObserver] = None,
        navigation_timeout: float = _DEFAULT_NAVIGATION_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            cache_minutes:      How long extracted keys stay valid (default 60).
            enabled:            ``False`` turns :meth:`get_game_duration` into
                                a no-op returning ``None``.
            base_url:           Site root.
            timeout:            HTTP request timeout in seconds.
            observer:           :class:`NetworkObserver` used to harvest keys;
                                a headless :class:`PlaywrightObserver` when
                                omitted.
            navigation_timeout: Browser page-load timeout in seconds.
            session:            ``requests.Session`` to send searches with.
                                A session created here is closed by
                                :meth:`destroy`.
        """
        self.enabled = enabled is not False
        self.base_url = base_url.rstrip('/')
        self.cache_minutes = cache_minutes or DEFAULT_CACHE_MINUTES
        self._timeout = timeout

        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

        self.credentials = CredentialPair()
        self.extractor = KeyExtractor(
            observer if observer is not None else PlaywrightObserver(),
            base_url=self.base_url,
            timeout=navigation_timeout,
        )
        self.cache = CredentialCache(
            self.extractor, self.credentials, cache_minutes=self.cache_minutes,
        )
        self._destroyed = False

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs: Any) -> 'HLTBClient':
        """Build a client from a config dict (see ``config_template.json``).

        Extra keyword arguments are passed straight to the constructor.
        """
        if 'observer' not in kwargs:
            kwargs['observer'] = PlaywrightObserver(
                headless=config.get('headless', True),
                settle_seconds=config.get('settle_seconds', 2.0),
                persistent=config.get('keep_browser_open', False),
            )
        return cls(
            cache_minutes=config.get('cache_minutes', DEFAULT_CACHE_MINUTES),
            enabled=config.get('enabled', True),
            base_url=config.get('base_url', BASE_URL),
            timeout=config.get('request_timeout', _DEFAULT_TIMEOUT),
            navigation_timeout=config.get('navigation_timeout', _DEFAULT_NAVIGATION_TIMEOUT),
            **kwargs,
        )

    def __enter__(self) -> 'HLTBClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.destroy()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search_game(self, game_name: str) -> List[Dict[str, Any]]:
        """Search HowLongToBeat and return the raw result entries.

        Tries ``/api/locate/<search_key>`` first.  On a 404 the keys are
        re-extracted once and the locate call retried once; otherwise, or if
        that retry fails too, ``/api/search`` is used with the auth token.

        Args:
            game_name: Free-text game name.

        Returns:
            List of result dicts (``game_id``, ``game_name``, ``game_type``,
            ``comp_main``, ``comp_plus``, ``comp_100``, ...).  Empty when the
            site found nothing.

        Raises:
            HLTBCredentialsError: No key could be obtained at all.
            HLTBNoMethodsError:   Neither endpoint has a usable credential.
            HLTBExtractionError:  The browser session failed.
            HLTBAPIError:         The request that was tried last failed.
        """
        logger.info("Searching for: %s", game_name)

        keys = self.cache.get_valid_credentials()
        search_key, auth_token = keys.search_key, keys.auth_token

        if search_key:
            try:
                results = self._search_with_locate(game_name, search_key)
                logger.info("Locate search successful, found %d results", len(results))
                return results
            except HLTBAPIError as exc:
                if exc.status_code != _HTTP_NOT_FOUND:
                    logger.warning("Locate search failed: %s", exc)
                else:
                    logger.warning("Locate search rejected with 404 - URL: %s", exc.endpoint)
                    results, auth_token = self._retry_locate_after_refresh(game_name)
                    if results is not None:
                        return results
        else:
            logger.info("No search key available, skipping locate search")

        if not auth_token:
            logger.warning("No auth token available, cannot use /api/search")
            raise HLTBNoMethodsError("Both search methods unavailable - no valid keys")

        try:
            results = self._search_with_auth_token(game_name, auth_token)
        except HLTBAPIError as exc:
            logger.warning("Auth-token search failed: %s", exc)
            raise
        logger.info("Auth-token search successful, found %d results", len(results))
        return results

    def get_game_duration(self, game_name: str) -> Optional[DurationRecord]:
        """Return completion times for the game named exactly *game_name*.

        Matching is case-insensitive and ignores surrounding whitespace.
        Never raises: every failure is logged and reported as ``None``.

        Returns:
            :class:`DurationRecord` in hours, or ``None`` when the client is
            disabled, the name is invalid, the lookup failed, there is no
            exact match, or the match has no submitted times.
        """
        if not self.enabled:
            logger.info("Service disabled")
            return None

        if not game_name or not isinstance(game_name, str):
            logger.info("Invalid game name provided")
            return None

        logger.info("Getting duration for: %s", game_name)
        try:
            results = self.search_game(game_name)
            record = resolve_duration(game_name, results)
        except HLTBError as exc:
            logger.warning("Could not fetch duration for %s: %s", game_name, exc)
            return None
        except Exception:
            logger.exception("Unexpected error fetching duration for %s", game_name)
            return None

        if record is not None:
            logger.info("Duration data found: %s", record.to_dict())
        return record

    @staticmethod
    def seconds_to_hours(seconds) -> Optional[float]:
        """Seconds → hours with 2 decimals, ``None`` when not positive."""
        return seconds_to_hours(seconds)

    @staticmethod
    def format_duration(hours) -> Optional[str]:
        """Hours → ``"12h 30m"``, ``None`` when not positive."""
        return format_duration(hours)

    def game_url(self, game_id) -> str:
        """Build the HowLongToBeat page URL for *game_id*."""
        return f"{self.base_url}/game/{game_id}"

    def destroy(self) -> None:
        """Release the browser (if one is kept open) and the HTTP session.

        Safe to call more than once.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self.extractor.close()
        if self._owns_session:
            self._session.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _retry_locate_after_refresh(
        self, game_name: str,
    ) -> Tuple[Optional[List[Dict[str, Any]]], Optional[str]]:
        """Force one re-extraction and retry the locate search once.

        Returns:
            ``(results, None)`` when the retry succeeded, otherwise
            ``(None, auth_token)`` with whatever auth token is now cached.
        """
        self.cache.invalidate()
        fresh = self.cache.get_valid_credentials()

        if fresh.search_key:
            try:
                results = self._search_with_locate(game_name, fresh.search_key)
                logger.info("Locate retry successful, found %d results", len(results))
                return results, None
            except HLTBAPIError as exc:
                logger.warning("Locate retry also failed: %s", exc)
        return None, fresh.auth_token

    def _search_with_locate(self, game_name: str, search_key: str) -> List[Dict[str, Any]]:
        return self._post(f"{self.base_url}/api/locate/{search_key}", game_name)

    def _search_with_auth_token(self, game_name: str, auth_token: str) -> List[Dict[str, Any]]:
        return self._post(
            f"{self.base_url}/api/search", game_name,
            extra_headers={'x-auth-token': auth_token},
        )

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'User-Agent':   USER_AGENT,
            'Referer':      self.base_url,
            'Origin':       self.base_url,
        }

    def _post(
        self,
        url: str,
        game_name: str,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """POST the search payload to *url* and return the ``data`` list."""
        headers = self._headers()
        if extra_headers:
            headers.update(extra_headers)

        payload = build_search_payload(game_name)
        logger.debug("POST %s terms=%s", url, payload['searchTerms'])
        try:
            resp = self._session.post(url, json=payload, headers=headers, timeout=self._timeout)
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise HLTBAPIError(
                f"HLTB API error {resp.status_code} for {url}",
                status_code=resp.status_code,
                endpoint=url,
            ) from exc
        except requests.RequestException as exc:
            raise HLTBAPIError(f"Network error calling HLTB API: {exc}", endpoint=url) from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise HLTBAPIError(f"Invalid JSON from {url}", endpoint=url) from exc

        if body is None:
            return []
        if not isinstance(body, dict):
            raise HLTBAPIError(f"Unexpected response shape from {url}", endpoint=url)

        data = body.get('data')
        if data is None:
            return []
        if not isinstance(data, list):
            raise HLTBAPIError(f"Expected a 'data' list from {url}", endpoint=url)
        return data
