"""HTTP POST of OTLP payloads with retries on throttling and server errors."""

from __future__ import annotations

import http.client
import ipaddress
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from urllib.parse import urlparse

_DELAYS: tuple[float, ...] = (0.0, 1.0, 2.0)
_SUCCESS = frozenset({200, 202, 204})
_BODY_LIMIT = 512


class HTTPStatusError(Exception):
    """The endpoint answered with a status other than 200, 202 or 204."""

    def __init__(self, status_code: int, body: str, attempts: int | None = None) -> None:
        self.status_code = status_code
        self.body = body
        self.attempts = attempts
        message = f"HTTP {status_code}: {body}"
        if attempts is not None:
            message = f"post: {attempts} attempts failed: {message}"
        super().__init__(message)


class PostCancelled(Exception):
    """The post was cancelled while waiting to retry."""


def _is_retryable(code: int) -> bool:
    return code == 429 or code >= 500


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _opener(endpoint: str) -> urllib.request.OpenerDirector:
    host = urlparse(endpoint).hostname or ""
    if _is_loopback(host):
        return urllib.request.build_opener(urllib.request.ProxyHandler({}))
    return urllib.request.build_opener()


def _post_once(
    endpoint: str, headers: Mapping[str, str], body: bytes, timeout: float
) -> None:
    request = urllib.request.Request(endpoint, data=body, method="POST")
    request.add_header("Content-Type", "application/json")
    for key, value in headers.items():
        request.add_header(key, value)
    try:
        with _opener(endpoint).open(request, timeout=timeout) as response:
            code = response.status
            text = response.read(_BODY_LIMIT)
    except urllib.error.HTTPError as exc:
        code = exc.code
        try:
            text = exc.read(_BODY_LIMIT)
        finally:
            exc.close()
    if code not in _SUCCESS:
        raise HTTPStatusError(code, text.decode("utf-8", errors="replace"))


def post(
    endpoint: str,
    headers: Mapping[str, str] | None = None,
    body: bytes = b"",
    timeout: float = 30.0,
    sleep: Callable[[float], object] = time.sleep,
    cancel: threading.Event | None = None,
) -> None:
    """POST a JSON body, making up to three attempts.

    429 responses, 5xx responses and network failures are retried after 1s
    and then 2s. Other failure statuses raise at once. Setting ``cancel``
    aborts with PostCancelled before the next attempt.
    """
    headers = headers or {}

    def check_cancelled() -> None:
        if cancel is not None and cancel.is_set():
            raise PostCancelled("post cancelled")

    last_error: Exception | None = None
    for attempt, delay in enumerate(_DELAYS):
        check_cancelled()
        if attempt > 0:
            sleep(delay)
            check_cancelled()
        try:
            _post_once(endpoint, headers, body, timeout)
            return
        except HTTPStatusError as exc:
            if not _is_retryable(exc.status_code):
                raise
            last_error = exc
        except (OSError, http.client.HTTPException) as exc:
            last_error = exc

    attempts = len(_DELAYS)
    if isinstance(last_error, HTTPStatusError):
        raise HTTPStatusError(
            last_error.status_code, last_error.body, attempts=attempts
        ) from last_error
    raise ConnectionError(f"post: {attempts} attempts failed: {last_error}") from last_error