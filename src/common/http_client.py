"""Shared HTTP helpers used by the artifact fetcher and the snapshot scanner.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. This module is dependency-light and can be
safely imported by both registry/* and versioning/* without cycles.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from typing import Any, Optional, Dict, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class NetworkError(IOError):
    """Raised when a request cannot be completed."""

    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


# In-memory cache of 200 responses. Misses and errors are never stored.
_http_cache: Dict[str, Tuple[Any, float]] = {}
_http_cache_lock = threading.Lock()


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float], now: Optional[float] = None) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    now = time.time() if now is None else now
    return now - cached_time < Constants.HTTP_CACHE_TTL_SEC


def _store(cache_key: str, result: Tuple[int, Dict[str, str], str]) -> None:
    """Cache ``result`` and evict expired entries. Caller must not hold the lock."""
    now = time.time()
    with _http_cache_lock:
        expired = [k for k, entry in _http_cache.items() if not _is_cache_valid(entry, now)]
        for k in expired:
            del _http_cache[k]
        _http_cache[cache_key] = (result, now)


def cache_size() -> int:
    """Number of cached responses."""
    with _http_cache_lock:
        return len(_http_cache)


def clear_cache() -> None:
    """Drop every cached response."""
    with _http_cache_lock:
        _http_cache.clear()


def get_text(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, retries, and 200-response caching with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, body_text). A status of 0 means
        every attempt failed; the body then carries the last error.
    """
    cache_key = _get_cache_key('GET', url, headers)
    safe_target = safe_url(url)

    with _http_cache_lock:
        cached = _http_cache.get(cache_key)
    if cached is not None and _is_cache_valid(cached):
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="http_client",
                    action="GET",
                    target=safe_target
                )
            )
        return cached[0]

    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(headers),
                    **kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

            result = (response.status_code, dict(response.headers), response.text)
            if response.status_code == 200:
                _store(cache_key, result)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=response.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            if response.status_code >= 500:
                last_exception = f"HTTP {response.status_code}"
                continue
            return result

    # All retries failed
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def download_file(url: str, dest_path: str, *, context: str) -> bool:
    """Stream ``url`` into ``dest_path``.

    The body is written to a temporary file in the destination directory and
    renamed into place, so concurrent readers never see a partial file.

    Returns:
        True when the file was written, False when the server answered 404.

    Raises:
        NetworkError: on connection errors or any other non-200 status.
    """
    safe_target = safe_url(url)
    dest_dir = os.path.dirname(dest_path) or "."
    os.makedirs(dest_dir, exist_ok=True)
    with Timer() as t:
        try:
            with requests.get(
                url,
                timeout=Constants.REQUEST_TIMEOUT,
                headers=_default_headers(None),
                stream=True,
            ) as res:
                if res.status_code == 404:
                    return False
                if res.status_code != 200:
                    raise NetworkError(
                        f"{context} download failed with HTTP {res.status_code}",
                        url=safe_target,
                        status_code=res.status_code,
                    )
                fd, tmp_path = tempfile.mkstemp(dir=dest_dir, suffix=".part")
                try:
                    with os.fdopen(fd, "wb") as fh:
                        for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                            if chunk:
                                fh.write(chunk)
                    os.replace(tmp_path, dest_path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
        except requests.Timeout as exc:
            raise NetworkError(f"{context} download timed out", url=safe_target) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{context} download error: {exc}", url=safe_target) from exc

    if is_debug_enabled(logger):
        logger.debug(
            "Downloaded file",
            extra=extra_context(
                event="download",
                component="http_client",
                action="GET",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context
            )
        )
    return True
