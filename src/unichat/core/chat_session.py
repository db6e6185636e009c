from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional

import httpx

from unichat.protocol.stream import DeltaStream, stream_completion
from unichat.resilience.retry import RetryPolicy
from .context import ContextPolicy, ContextWindowManager
from .models import ModelConfig, NormalizedDelta
from .ports import Message


class ChatSession:
    """
    In-memory conversation against one model config. Each turn streams deltas;
    the assistant text (possibly partial) joins the history when the turn ends.
    """

    def __init__(
        self,
        config: ModelConfig,
        *,
        client: Optional[httpx.Client] = None,
        policy: Optional[RetryPolicy] = None,
        context: Optional[ContextPolicy] = None,
        system_prompt: Optional[str] = None,
    ):
        self.config = config
        self.client = client
        self.policy = policy
        self.ctx_mgr = ContextWindowManager(context) if context else None
        self.messages: List[Message] = []
        if system_prompt:
            self.messages.append({"role": "system", "content": system_prompt})
        self.current: Optional[DeltaStream] = None
        self.last_error: Optional[str] = None

    def run_turn_stream(self, user_text: str, attachments: Optional[List[Dict[str, Any]]] = None) -> Iterator[NormalizedDelta]:
        """
        Raises ConfigError / UnsupportedProviderError immediately (nothing is
        added to the history); later failures arrive as a terminal delta.
        """
        user: Message = {"role": "user", "content": user_text}
        if attachments:
            user["attachments"] = list(attachments)
        outgoing = self.messages + [user]
        if self.ctx_mgr:
            outgoing = self.ctx_mgr.apply(outgoing)
        stream = stream_completion(self.config, outgoing, client=self.client, policy=self.policy)
        self.messages.append(user)
        self.current = stream
        self.last_error = None
        partial: List[str] = []

        def gen():
            try:
                for delta in stream:
                    partial.append(delta.content)
                    if delta.error_message:
                        self.last_error = delta.error_message
                    yield delta
            finally:
                stream.close()
                self.current = None
                text = "".join(partial)
                if text:
                    self.messages.append({"role": "assistant", "content": text})
        return gen()

    def run_turn(self, user_text: str) -> str:
        """Blocking helper: the whole reply as one string."""
        return "".join(d.content for d in self.run_turn_stream(user_text))

    def cancel(self) -> None:
        if self.current is not None:
            self.current.cancel()
