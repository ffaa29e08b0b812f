"""HTTP session shared by the sheet fetch and the Google Maps clients."""

from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from store_locator.config import DEFAULT_RETRIES, DEFAULT_TIMEOUT

USER_AGENT = "store-locator/0.1"
RETRY_BACKOFF = 0.8
RETRY_STATUSES = (429, 500, 502, 503, 504)


def make_session(
    timeout: float = DEFAULT_TIMEOUT, retries: int = DEFAULT_RETRIES
) -> requests.Session:
    """Session for sheet downloads and Maps API calls.

    Idempotent requests are retried with backoff on connection errors and on
    429 and 5xx responses. Every request gets ``timeout`` unless the caller
    passes one.
    """
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=RETRY_BACKOFF,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET", "HEAD", "OPTIONS"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


def is_ok(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300
