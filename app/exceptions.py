"""Exception hierarchy shared by the HLTB client and its services."""
from typing import Optional


class HLTBError(Exception):
    """Base class for every error raised by the HLTB client."""


class HLTBCredentialsError(HLTBError):
    """Raised when neither a search key nor an auth token can be obtained."""


class HLTBNoMethodsError(HLTBCredentialsError):
    """Raised when no search scheme has a usable credential."""


class HLTBExtractionError(HLTBError):
    """Raised when the browser session used for key extraction fails."""


class HLTBAPIError(HLTBError):
    """Raised when a search endpoint returns an error or cannot be reached.

    Attributes:
        status_code: HTTP status of the failed response, or ``None`` for
                     network errors and unreadable bodies.
        endpoint:    URL that was requested.
    """

    def __init__(self, message: str, status_code: Optional[int] = None,
                 endpoint: str = '') -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
