"""HTTP plumbing shared by the payment provider clients.

Sessions carry a default per-call timeout and an optional transport-level
retry for connection errors. Status-level failures are not retried here:
the provider clients retry whole fetches themselves (see
``finance_core.providers.base``).
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from finance_core.config import ProviderSettings
from finance_core.exceptions import ExternalFetchError

logger = logging.getLogger(__name__)


def make_session(settings: ProviderSettings | None = None) -> requests.Session:
    """Create a requests Session with a default timeout and connection retries.

    Configures the session with:
    - JSON Accept header
    - Retry adapter for HTTP/HTTPS on connection errors only
    - Default timeout for all requests

    Args:
        settings: Provider settings. Defaults to ``ProviderSettings.from_env()``.

    Returns:
        Configured requests.Session object.

    """
    settings = settings or ProviderSettings.from_env()
    s = requests.Session()
    s.headers.update({"Accept": "application/json"})
    retry = Retry(
        total=settings.connect_retries,
        connect=settings.connect_retries,
        read=0,
        status=0,
        backoff_factor=0.8,  # 0.8, 1.6, 3.2, ...
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    # Default timeouts via a wrapper
    orig_request = s.request
    timeout = settings.timeout

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


def basic_auth_header(key: str) -> dict[str, str]:
    """Authorization header for providers that take a pre-encoded Basic key."""
    return {"Authorization": f"Basic {key}"}


def ensure_ok(resp: requests.Response, msg: str) -> None:
    """Check if HTTP response is successful, raise ExternalFetchError if not.

    Args:
        resp: HTTP response object to check.
        msg: Error message prefix if response is not successful.

    Raises:
        ExternalFetchError: If response status code is not in 200-299 range.

    """
    if not (200 <= resp.status_code < 300):
        raise ExternalFetchError(f"{msg}. HTTP {resp.status_code}: {(resp.text or '')[:400]}")


def request_json(
    s: requests.Session,
    method: str,
    url: str,
    msg: str,
    **kwargs: Any,
) -> Any:
    """Perform one request and decode its JSON body.

    Transport failures (connection errors, timeouts), non-2xx statuses and
    non-JSON bodies all surface as ExternalFetchError so callers can treat
    them uniformly as retryable.

    Args:
        s: Session to send the request with.
        method: HTTP method.
        url: Absolute URL.
        msg: Context used as the error message prefix.
        **kwargs: Passed through to ``Session.request``.

    Returns:
        Decoded JSON body, or None for an empty body.

    Raises:
        ExternalFetchError: On any failure.

    """
    try:
        resp = s.request(method, url, **kwargs)
    except requests.RequestException as e:
        raise ExternalFetchError(f"{msg}: {e}") from e
    ensure_ok(resp, msg)
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        raise ExternalFetchError(f"{msg}: response is not JSON") from e
