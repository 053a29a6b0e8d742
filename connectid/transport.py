"""HTTP transport used to reach the identity endpoint."""

from typing import Any, Callable, Dict, Optional

import requests

from .logger import get_logger
from .retry import RetryError, exponential_backoff, should_retry_http_status

Callbacks = Dict[str, Callable]

RETRYABLE_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError)


def is_retryable(error: Exception) -> bool:
    """Timeouts, dropped connections and retryable HTTP statuses get another attempt."""
    if isinstance(error, requests.exceptions.HTTPError):
        return error.response is not None and should_retry_http_status(error.response.status_code)
    return isinstance(error, RETRYABLE_ERRORS)


class RequestsTransport:
    """Callback-style GET transport backed by requests.

    Called as ``transport(url, callbacks, data, options)``. Exactly one of
    ``callbacks["success"](body)`` or ``callbacks["error"](message)`` is
    invoked per call. ``with_credentials`` requests go through a session
    that keeps the cookies the endpoint sets.
    """

    def __init__(self, timeout: float = 15.0, max_retries: int = 0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self.logger = get_logger()

    def __call__(self, url: str, callbacks: Callbacks, data: Any = None, options: Optional[Dict[str, Any]] = None):
        options = options or {}
        method = options.get("method", "GET").upper()
        if method != "GET":
            raise ValueError(f"Unsupported method: {method}")

        with_credentials = bool(options.get("with_credentials"))
        try:
            resp = self._fetch_with_retry(url, with_credentials, data)
            resp.raise_for_status()
        except RetryError as e:
            self._fail(callbacks, url, e.__cause__ or e)
            return
        except requests.exceptions.RequestException as e:
            self._fail(callbacks, url, e)
            return

        callbacks["success"](resp.text)

    def _fetch_with_retry(self, url: str, with_credentials: bool, data: Any):
        fetch = exponential_backoff(
            max_retries=self.max_retries,
            should_retry=is_retryable,
            on_retry=self._on_retry,
        )(self._get)
        return fetch(url, with_credentials, data)

    def _get(self, url: str, with_credentials: bool, data: Any):
        if with_credentials:
            resp = self.session.get(url, params=data, timeout=self.timeout)
        else:
            resp = requests.get(url, params=data, timeout=self.timeout)
        # Only statuses worth retrying raise inside the retry loop
        if should_retry_http_status(resp.status_code):
            resp.raise_for_status()
        return resp

    def _on_retry(self, attempt: int, error: Exception, delay: float):
        self.logger.warning("Retrying ID fetch", attempt=attempt, delay=delay, error=str(error))

    def _fail(self, callbacks: Callbacks, url: str, error: BaseException):
        if isinstance(error, requests.exceptions.HTTPError):
            status = error.response.status_code if error.response is not None else "HTTPError"
            message = f"Request failed ({status}): {url}"
        elif isinstance(error, requests.exceptions.Timeout):
            message = f"Request timed out: {url}"
        else:
            message = f"Request error: {error}"
        callbacks["error"](message)
