"""
Remote asset fetcher.

Downloads the optional source image of a preview. This is the only step of a
render that blocks on the network, so every call is bounded by a timeout and
can be aborted through a `threading.Event`. Every failure is reported as a
`FetchError`; the render pipeline treats that as "no photo available".
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Optional
from urllib.parse import urlparse

import requests

from og_preview.services.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
# Upper bound on the connect timeout when the caller passes a cancel event.
CANCELLABLE_CONNECT_TIMEOUT_S = 2.0
CHUNK_SIZE = 64 * 1024
USER_AGENT = "og-preview/0.1 (+social preview renderer)"


def fetch_image(
    uri: str,
    *,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    max_bytes: Optional[int] = None,
) -> bytes:
    """
    Fetch the raw bytes behind `uri`.

    Args:
        uri: Absolute http(s) URL of the image.
        timeout: Overall budget in seconds for the whole download. Defaults to
            `OG_FETCH_TIMEOUT_S`.
        cancel: Optional event, checked before the request, once the response
            headers arrive and between chunks. It cannot interrupt a blocked
            socket call; when it is given the connect timeout is capped at
            `CANCELLABLE_CONNECT_TIMEOUT_S` and every read stays bounded by
            the remaining budget.
        max_bytes: Upper bound on the payload size. Defaults to `OG_FETCH_MAX_BYTES`.

    Returns:
        The response body.

    Raises:
        FetchError: on invalid URLs, HTTP errors, timeouts, oversize payloads
            or cancellation.
    """
    parsed = urlparse(uri)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise FetchError(f"Unsupported image URL: {uri!r}")

    budget = fetch_timeout() if timeout is None else timeout
    limit = fetch_max_bytes() if max_bytes is None else max_bytes
    deadline = time.monotonic() + budget

    if cancel is not None and cancel.is_set():
        raise FetchError("Image fetch cancelled before it started")

    remaining = _remaining(deadline)
    connect_timeout = remaining
    if cancel is not None:
        connect_timeout = min(remaining, CANCELLABLE_CONNECT_TIMEOUT_S)
    logger.info("Fetching source image %s (budget %.1fs)", uri, budget)
    try:
        response = requests.get(
            uri,
            stream=True,
            timeout=(connect_timeout, remaining),
            headers={"User-Agent": USER_AGENT, "Accept": "image/*"},
        )
    except requests.exceptions.RequestException as exc:
        raise FetchError(f"Failed to fetch {uri}: {exc}") from exc

    try:
        if cancel is not None and cancel.is_set():
            raise FetchError("Image fetch cancelled")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise FetchError(f"Source image returned HTTP {response.status_code}") from exc

        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise FetchError(f"Source image too large: {declared} bytes (limit {limit})")

        chunks = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if cancel is not None and cancel.is_set():
                    raise FetchError("Image fetch cancelled")
                _remaining(deadline)
                if not chunk:
                    continue
                received += len(chunk)
                if received > limit:
                    raise FetchError(f"Source image exceeds {limit} bytes")
                chunks.append(chunk)
        except requests.exceptions.RequestException as exc:
            raise FetchError(f"Failed while downloading {uri}: {exc}") from exc
    finally:
        response.close()

    logger.info("Fetched %d bytes from %s", received, uri)
    return b"".join(chunks)


def _remaining(deadline: float) -> float:
    left = deadline - time.monotonic()
    if left <= 0:
        raise FetchError("Image fetch deadline exceeded")
    return left


def fetch_timeout() -> float:
    """Download budget in seconds, from `OG_FETCH_TIMEOUT_S`."""
    return float(os.getenv("OG_FETCH_TIMEOUT_S", str(DEFAULT_TIMEOUT_S)))


def fetch_max_bytes() -> int:
    """Payload size cap in bytes, from `OG_FETCH_MAX_BYTES`."""
    return int(os.getenv("OG_FETCH_MAX_BYTES", str(DEFAULT_MAX_BYTES)))
