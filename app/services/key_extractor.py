"""
key_extractor.py
================
Harvests the short-lived credentials HowLongToBeat's own front-end uses.

The site rotates two independent credentials:

* a hexadecimal *search key* embedded in the path of
  ``POST /api/locate/<search_key>``
* an *auth token* sent as the ``x-auth-token`` header of ``POST /api/search``

Rather than reverse-engineering how they are derived, a headless browser
loads the landing page and the outgoing requests are observed as the page's
JavaScript issues them.  Requests are only observed, never blocked or
modified.

The browser is hidden behind :class:`NetworkObserver` so that the rest of
the client can be exercised with a scripted observer::

    extractor = KeyExtractor(PlaywrightObserver())
    keys = extractor.extract()
    # CapturedKeys(search_key='5e1a0c...', auth_token='eyJ0...')
"""
from __future__ import annotations

import logging
import re
import urllib.parse
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from app.exceptions import HLTBExtractionError

logger = logging.getLogger('hltb.extractor')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
BASE_URL = 'https://howlongtobeat.com'
USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--disable-gpu',
]
AUTH_HEADER = 'x-auth-token'
_NAVIGATION_TIMEOUT = 30  # seconds
_SETTLE_SECONDS = 2.0

_LOCATE_RE = re.compile(r'/api/locate/([a-f0-9]{16,})', re.IGNORECASE)
_SEARCH_PATH = '/api/search'


class CapturedKeys(NamedTuple):
    """Credentials seen during one pass (either may be ``None``)."""
    search_key: Optional[str] = None
    auth_token: Optional[str] = None

    @property
    def found_any(self) -> bool:
        return bool(self.search_key or self.auth_token)


class RequestSniffer:
    """Inspects outgoing requests and remembers the last credentials seen."""

    def __init__(self) -> None:
        self.search_key: Optional[str] = None
        self.auth_token: Optional[str] = None

    def observe(self, url: str, headers: Optional[Dict[str, str]] = None) -> None:
        path = urllib.parse.urlparse(url).path

        match = _LOCATE_RE.search(path)
        if match:
            self.search_key = match.group(1)
            logger.info("Search key intercepted: %s", self.search_key)

        if _SEARCH_PATH in path:
            lowered = {k.lower(): v for k, v in (headers or {}).items()}
            token = lowered.get(AUTH_HEADER)
            if token:
                self.auth_token = token
                logger.info("Auth token intercepted: %s", token)

    def keys(self) -> CapturedKeys:
        return CapturedKeys(self.search_key, self.auth_token)


# ---------------------------------------------------------------------------
# Network observers
# ---------------------------------------------------------------------------

class NetworkObserver(ABC):
    """Capability that loads a page and reports the credentials it issued."""

    @abstractmethod
    def capture(self, page_url: str, timeout: float) -> CapturedKeys:
        """Load *page_url* and return whatever credentials were observed.

        Must return an empty :class:`CapturedKeys` when nothing was seen and
        raise :class:`HLTBExtractionError` only on infrastructure failure.
        """

    def close(self) -> None:
        """Release any resource kept open between captures."""


class PlaywrightObserver(NetworkObserver):
    """Headless Chromium observer built on Playwright's sync API.

    Args:
        headless:       Run the browser without a window.
        user_agent:     User agent for the browsing context.
        settle_seconds: Extra wait after network idle for trailing calls.
        persistent:     Keep one browser process open across captures.
                        Each capture still gets its own browsing context,
                        closed before :meth:`capture` returns.
    """

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = USER_AGENT,
        settle_seconds: float = _SETTLE_SECONDS,
        persistent: bool = False,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.settle_seconds = settle_seconds
        self.persistent = persistent
        self._playwright: Any = None
        self._browser: Any = None

    def capture(self, page_url: str, timeout: float = _NAVIGATION_TIMEOUT) -> CapturedKeys:
        sniffer = RequestSniffer()
        try:
            if self.persistent:
                self._run_session(self._ensure_browser(), page_url, timeout, sniffer)
            else:
                with sync_playwright() as pw:
                    browser = self._launch(pw)
                    try:
                        self._run_session(browser, page_url, timeout, sniffer)
                    finally:
                        browser.close()
        except PlaywrightTimeoutError as exc:
            keys = sniffer.keys()
            if keys.found_any:
                logger.warning("Navigation to %s timed out, keeping partial capture", page_url)
                return keys
            raise HLTBExtractionError(f"Timed out loading {page_url}: {exc}") from exc
        except PlaywrightError as exc:
            if self.persistent:
                self._discard_browser()
            raise HLTBExtractionError(f"Browser session failed: {exc}") from exc

        return sniffer.keys()

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError as exc:
                logger.warning("Error closing browser: %s", exc)
            self._browser = None
            logger.info("Browser closed")
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _launch(self, pw):
        logger.info("Launching headless browser to extract keys...")
        return pw.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)

    def _discard_browser(self) -> None:
        # The next pass relaunches; a crashed browser may refuse to close.
        browser, self._browser = self._browser, None
        if browser is None:
            return
        logger.warning("Dropping persistent browser after failure")
        try:
            browser.close()
        except PlaywrightError as exc:
            logger.debug("Error closing failed browser: %s", exc)

    def _ensure_browser(self):
        if self._browser is not None and not self._browser.is_connected():
            logger.warning("Persistent browser disconnected, relaunching")
            self._discard_browser()
        if self._browser is None:
            if self._playwright is None:
                self._playwright = sync_playwright().start()
            self._browser = self._launch(self._playwright)
        return self._browser

    def _run_session(self, browser, page_url: str, timeout: float,
                     sniffer: RequestSniffer) -> None:
        context = browser.new_context(user_agent=self.user_agent)
        try:
            page = context.new_page()
            page.on('request', lambda request: sniffer.observe(request.url, request.headers))
            logger.info("Loading HLTB search page...")
            page.goto(page_url, wait_until='networkidle', timeout=timeout * 1000)
            page.wait_for_timeout(self.settle_seconds * 1000)
        finally:
            context.close()


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class KeyExtractor:
    """Runs one observation pass against the HLTB landing page.

    Args:
        observer: :class:`NetworkObserver` that drives the browser.
        base_url: Site root; the page loaded is ``{base_url}/?q={query}``.
        query:    Search query that makes the page issue its API calls.
        timeout:  Navigation timeout in seconds.
    """

    def __init__(
        self,
        observer: NetworkObserver,
        base_url: str = BASE_URL,
        query: str = 'test',
        timeout: float = _NAVIGATION_TIMEOUT,
    ) -> None:
        self.observer = observer
        self.base_url = base_url.rstrip('/')
        self.query = query
        self.timeout = timeout
        self.passes = 0

    @property
    def page_url(self) -> str:
        return f"{self.base_url}/?{urllib.parse.urlencode({'q': self.query})}"

    def extract(self) -> CapturedKeys:
        """Return the credentials observed while loading the landing page.

        Raises:
            HLTBExtractionError: The browser could not be started or the
                                 page could not be loaded.
        """
        self.passes += 1
        keys = self.observer.capture(self.page_url, self.timeout)
        if keys.found_any:
            logger.info("Extraction results - SearchKey: %s, AuthToken: %s",
                        keys.search_key or 'none', keys.auth_token or 'none')
        else:
            logger.warning("Could not extract any keys from network requests")
        return keys

    def close(self) -> None:
        self.observer.close()


def extract_keys_from_requests(requests_seen: List[Dict[str, Any]]) -> CapturedKeys:
    """Run a list of ``{'url': ..., 'headers': {...}}`` dicts through a sniffer.

    Useful for replaying requests exported from a HAR file.
    """
    sniffer = RequestSniffer()
    for req in requests_seen:
        sniffer.observe(req.get('url', ''), req.get('headers'))
    return sniffer.keys()
