"""Services package: expose all concrete services from one import."""
from .credential_service import CredentialCache, CredentialPair
from .duration_service import (
    DurationRecord,
    find_exact_match,
    format_duration,
    resolve_duration,
    seconds_to_hours,
)
from .key_extractor import (
    CapturedKeys,
    KeyExtractor,
    NetworkObserver,
    PlaywrightObserver,
    RequestSniffer,
)

__all__ = [
    'CredentialCache',
    'CredentialPair',
    'DurationRecord',
    'find_exact_match',
    'format_duration',
    'resolve_duration',
    'seconds_to_hours',
    'CapturedKeys',
    'KeyExtractor',
    'NetworkObserver',
    'PlaywrightObserver',
    'RequestSniffer',
]
