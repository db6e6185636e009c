# src/unichat/core/context.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import tiktoken

from .ports import Message

logger = logging.getLogger(__name__)

# per-message framing overhead (role, separators); attachments are not tokenised
_MESSAGE_OVERHEAD = 4
_ATTACHMENT_COST = 85


def _rough_token_count(text: str) -> int:
    # ≈ 4 chars/token
    if not text:
        return 0
    return max(1, (len(text) + 3) // 4)


class TokenCounter:
    """
    Counts tokens for chat messages with tiktoken's cl100k_base. The encoding
    file is fetched on first use; without it a 4-chars-per-token estimate is used.
    """

    def __init__(self):
        try:
            self._enc = tiktoken.get_encoding("cl100k_base")
        except Exception as e:
            logger.info("tiktoken encoding unavailable (%s); using character estimate", e)
            self._enc = None

    def count_text(self, text: str) -> int:
        if self._enc is None:
            return _rough_token_count(text)
        return len(self._enc.encode(text, disallowed_special=()))

    def count_messages(self, messages: List[Message]) -> int:
        total = 0
        for m in messages:
            total += _MESSAGE_OVERHEAD + self.count_text(str(m.get("content") or ""))
            total += _ATTACHMENT_COST * len(m.get("attachments") or [])
        return total


@dataclass(frozen=True)
class ContextPolicy:
    """
    max_input_tokens: cap for the outgoing history.
    response_reserve_tokens: room left for the model's answer.
    always_keep_last_n: most recent messages that are never trimmed.
    """
    max_input_tokens: int
    response_reserve_tokens: int = 1024
    always_keep_last_n: int = 6

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> Optional["ContextPolicy"]:
        if not section:
            return None
        return cls(
            max_input_tokens=int(section["max_input_tokens"]),
            response_reserve_tokens=int(section.get("response_reserve_tokens", 1024)),
            always_keep_last_n=int(section.get("always_keep_last_n", 6)),
        )


class ContextWindowManager:
    """
    Drops the oldest turns until the history fits the budget. The leading
    system message and the last N messages always survive.
    """

    def __init__(self, policy: ContextPolicy, counter: Optional[TokenCounter] = None):
        self.policy = policy
        self.counter = counter or TokenCounter()

    @property
    def budget(self) -> int:
        return max(1, self.policy.max_input_tokens - max(0, self.policy.response_reserve_tokens))

    def apply(self, messages: List[Message]) -> List[Message]:
        if not messages:
            return messages

        system: List[Message] = []
        rest = list(messages)
        if rest[0].get("role") == "system":
            system, rest = [rest[0]], rest[1:]

        keep = min(self.policy.always_keep_last_n, len(rest))
        head, tail = (rest[:-keep], rest[-keep:]) if keep else (rest, [])

        start = 0
        while start < len(head) and self.counter.count_messages(system + head[start:] + tail) > self.budget:
            start += 1
        trimmed = system + head[start:] + tail

        if start:
            logger.debug("Context trimmed: dropped %d of %d messages", start, len(messages))
        return trimmed
