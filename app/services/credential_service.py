"""In-memory cache for the two HLTB credentials and their expiries."""
import datetime
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.exceptions import HLTBCredentialsError
from app.services.key_extractor import CapturedKeys, KeyExtractor

logger = logging.getLogger('hltb.cache')

DEFAULT_CACHE_MINUTES = 60


@dataclass
class CredentialPair:
    """Search key and auth token, each with its own expiry (unix timestamp).

    The halves are independent: either, both or neither may be present.
    """
    search_key: Optional[str] = None
    search_key_expiry: Optional[float] = None
    auth_token: Optional[str] = None
    auth_token_expiry: Optional[float] = None

    def search_key_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return bool(self.search_key) and self.search_key_expiry is not None \
            and now < self.search_key_expiry

    def auth_token_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return bool(self.auth_token) and self.auth_token_expiry is not None \
            and now < self.auth_token_expiry

    @property
    def has_any(self) -> bool:
        return bool(self.search_key or self.auth_token)

    def clear(self) -> None:
        self.search_key = None
        self.search_key_expiry = None
        self.auth_token = None
        self.auth_token_expiry = None

    def keys(self) -> CapturedKeys:
        return CapturedKeys(self.search_key, self.auth_token)


def _fmt_ts(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts).strftime('%Y-%m-%d %H:%M:%S')


class CredentialCache:
    """Hands out credentials, running the extractor when they are stale.

    A refresh only overwrites the artifacts the extractor actually found.
    An artifact missing from the latest pass keeps its previous value and
    expiry, so a still-accepted key is not thrown away; if the site rejects
    it the caller invalidates the cache.

    Refreshes are serialized: a caller that waited on the lock sees the
    pair the previous holder refreshed instead of launching another browser.

    Args:
        extractor:     :class:`KeyExtractor` used on a cache miss.
        pair:          :class:`CredentialPair` owned by the client; mutated
                       in place.
        cache_minutes: Lifetime of a freshly captured artifact.
        clock:         Returns the current unix time.
    """

    def __init__(
        self,
        extractor: KeyExtractor,
        pair: Optional[CredentialPair] = None,
        cache_minutes: float = DEFAULT_CACHE_MINUTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.extractor = extractor
        self.pair = pair if pair is not None else CredentialPair()
        self.cache_minutes = cache_minutes or DEFAULT_CACHE_MINUTES
        self._clock = clock
        self._lock = threading.Lock()

    def get_valid_credentials(self) -> CapturedKeys:
        """Return the cached credentials, extracting new ones if needed.

        Raises:
            HLTBCredentialsError: No search key or auth token has ever been
                                  captured.
            HLTBExtractionError:  The extraction pass itself failed.
        """
        with self._lock:
            now = self._clock()
            if self.pair.search_key_valid(now) and self.pair.auth_token_valid(now):
                logger.debug("Using cached keys")
                return self.pair.keys()

            logger.info("Keys expired or missing, extracting new ones...")
            captured = self.extractor.extract()

            expiry = self._clock() + self.cache_minutes * 60
            if captured.search_key:
                self.pair.search_key = captured.search_key
                self.pair.search_key_expiry = expiry
                logger.info("Search key cached until: %s", _fmt_ts(expiry))
            if captured.auth_token:
                self.pair.auth_token = captured.auth_token
                self.pair.auth_token_expiry = expiry
                logger.info("Auth token cached until: %s", _fmt_ts(expiry))

            if not self.pair.has_any:
                raise HLTBCredentialsError(
                    "Failed to extract API keys: could not obtain a search key or "
                    "auth token from HowLongToBeat. The website structure may have changed."
                )
            return self.pair.keys()

    def invalidate(self) -> None:
        """Forget both artifacts so the next lookup runs a fresh extraction."""
        with self._lock:
            self.pair.clear()
        logger.debug("Credential cache invalidated")
