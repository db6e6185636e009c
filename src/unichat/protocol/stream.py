from __future__ import annotations
import logging
import threading
from typing import Iterable, Iterator, Optional

import httpx

from unichat.core.errors import TransportError
from unichat.core.models import ModelConfig, NormalizedDelta, TransportRequest
from unichat.core.ports import ChunkParser, Message
from unichat.protocol.decoder import DONE, StreamDecoder, framing_for_content_type
from unichat.protocol.request import build_request
from unichat.providers.registry import select_parser
from unichat.resilience.retry import RetryPolicy, open_stream

logger = logging.getLogger(__name__)

CONNECTION_CLOSED = "connection closed unexpectedly"


class DeltaStream:
    """
    Lazy, ordered sequence of NormalizedDelta for one conversation turn.

    Iteration opens the connection; the last delta is always terminal (done or
    error), transport problems included. ``cancel()`` may come from any thread:
    no delta is delivered after it, and the connection is released as soon as
    the reading side notices.
    """

    def __init__(
        self,
        request: TransportRequest,
        parser: ChunkParser,
        *,
        client: Optional[httpx.Client] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.request = request
        self.parser = parser
        self._client = client
        self._policy = policy
        self._cancelled = threading.Event()
        self._gen = self._run()

    def __iter__(self) -> Iterator[NormalizedDelta]:
        return self

    def __next__(self) -> NormalizedDelta:
        if self._cancelled.is_set():
            self._close_gen()
            raise StopIteration
        return next(self._gen)

    def __enter__(self) -> "DeltaStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        self._close_gen()

    def close(self) -> None:
        self.cancel()

    def _close_gen(self) -> None:
        try:
            self._gen.close()
        except ValueError:
            # generator is running in another thread; it stops at the next chunk
            pass

    def _run(self) -> Iterator[NormalizedDelta]:
        client = self._client or httpx.Client(timeout=None)
        response: Optional[httpx.Response] = None
        try:
            try:
                req = client.build_request(
                    self.request.method, self.request.url,
                    headers=self.request.headers, json=self.request.body,
                )
            except Exception as e:
                # a hand-made TransportRequest can still be unsendable
                logger.error("Could not build request for %s: %s", self.request.url, e)
                yield NormalizedDelta("", True, f"invalid request: {e}")
                return
            try:
                response = open_stream(client, req, self._policy, cancelled=self._cancelled.is_set)
            except TransportError as e:
                logger.warning("Request to %s failed: %s", req.url.host, e)
                yield NormalizedDelta("", True, str(e))
                return
            if response is None:
                return

            decoder = StreamDecoder(framing_for_content_type(response.headers.get("content-type", "")))
            try:
                for chunk in decoder.iter_chunks(response.iter_bytes()):
                    if self._cancelled.is_set():
                        return
                    if chunk is DONE:
                        yield NormalizedDelta("", True)
                        return
                    delta = self.parser.parse_chunk(chunk)
                    if self._cancelled.is_set():
                        return
                    yield delta
                    if delta.is_terminal:
                        return
            except httpx.HTTPError as e:
                logger.warning("Stream from %s broke off: %s", req.url.host, e)
                yield NormalizedDelta("", True, f"{CONNECTION_CLOSED}: {e}")
                return

            logger.info("Stream from %s ended without a done signal", req.url.host)
            yield NormalizedDelta("", True, CONNECTION_CLOSED)
        finally:
            if response is not None:
                response.close()
            if self._client is None:
                client.close()


def stream_completion(
    config: ModelConfig,
    messages: Iterable[Message],
    *,
    client: Optional[httpx.Client] = None,
    policy: Optional[RetryPolicy] = None,
) -> DeltaStream:
    """
    Entry point for UI layers. Provider selection and request building run
    now, so UnsupportedProviderError / ConfigError raise here, before any I/O;
    everything after that arrives as deltas.
    """
    parser = select_parser(config)
    request = build_request(config, list(messages))
    return DeltaStream(request, parser, client=client, policy=policy)
