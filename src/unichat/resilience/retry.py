from __future__ import annotations
import json
import logging
import random
import time
from typing import Callable, Optional

import httpx

from unichat.core.errors import TransportError
from unichat.protocol.path import extract

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Connection-phase retries only. Once a response is accepted nothing is
    retried: deltas may already have reached the consumer.
    """

    def __init__(self, max_retries=2, base_delay=0.5, max_delay=8.0):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    def compute_backoff(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.1)


def _error_detail(response: httpx.Response) -> str:
    try:
        response.read()
        text = response.text
    except httpx.HTTPError:
        return response.reason_phrase
    try:
        data = json.loads(text)
    except ValueError:
        return text.strip()[:200] or response.reason_phrase
    msg = extract(data, "error.message") or extract(data, "error_msg") or extract(data, "message")
    return str(msg) if msg else text.strip()[:200]


def status_error(response: httpx.Response) -> TransportError:
    """Non-2xx response -> TransportError carrying the status and the provider's message."""
    return TransportError(f"HTTP {response.status_code}: {_error_detail(response)}",
                          status_code=response.status_code)


def open_stream(
    client: httpx.Client,
    request: httpx.Request,
    policy: Optional[RetryPolicy] = None,
    cancelled: Callable[[], bool] = lambda: False,
) -> Optional[httpx.Response]:
    """
    Send ``request`` with a streamed body. Returns a 2xx response, or None if
    cancelled while backing off. Raises TransportError when the connection
    cannot be made or the provider answers with an error status.
    """
    max_retries = policy.max_retries if policy else 0
    attempt = 0
    while True:
        attempt += 1
        if cancelled():
            return None
        try:
            response = client.send(request, stream=True)
        except httpx.TransportError as e:
            err = TransportError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__)
            err.__cause__ = e
        else:
            if response.is_success:
                return response
            try:
                err = status_error(response)
            finally:
                response.close()

        if not err.retryable or attempt > max_retries:
            raise err
        logger.warning("%s: %s, attempt %d/%d", request.url.host, err, attempt, max_retries + 1)
        time.sleep(policy.compute_backoff(attempt))
