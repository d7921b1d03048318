"""
HTTP session with connection pooling, automatic retry, and certifi CA bundle.

Only idempotent requests are retried by the adapter. Verify and mark are
POSTs and must never be replayed behind the user's back: a second mark
could be recorded as a duplicate, so retries of those are user-initiated.
"""

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .constants import CLIENT_VERSION

_retry_strategy = Retry(
    total=3,
    backoff_factor=1,                           # Wait 1s, 2s, 4s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["HEAD", "GET"],
)


def create_session():
    """Create a new requests.Session with connection pooling, retry, and SSL."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=2,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = certifi.where()
    session.headers["User-Agent"] = f"presence-check/{CLIENT_VERSION}"
    return session


def reset_session(session):
    """Close and recreate the HTTP session (fixes stale connections)."""
    try:
        session.close()
    except Exception:
        pass
    return create_session()


# Global shared session
http = create_session()
