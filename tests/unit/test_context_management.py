# tests/unit/test_context_management.py

from __future__ import annotations
import sys
from pathlib import Path

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import unichat.core.context as ctx
from unichat.core.context import ContextPolicy, ContextWindowManager, TokenCounter


class FlatCounter:
    """Every message costs 10 tokens."""

    def count_messages(self, messages):
        return 10 * len(messages)


def _history(turns: int):
    msgs = [{"role": "system", "content": "sys"}]
    for i in range(turns):
        msgs.append({"role": "user", "content": f"u{i}"})
        msgs.append({"role": "assistant", "content": f"a{i}"})
    return msgs


def test_trims_oldest_but_keeps_system_and_tail():
    policy = ContextPolicy(max_input_tokens=100, response_reserve_tokens=40, always_keep_last_n=2)
    mgr = ContextWindowManager(policy, counter=FlatCounter())
    out = mgr.apply(_history(10))
    # budget 60 -> six messages
    assert len(out) == 6
    assert out[0]["content"] == "sys"
    assert [m["content"] for m in out[-2:]] == ["u9", "a9"]


def test_tail_survives_even_over_budget():
    policy = ContextPolicy(max_input_tokens=10, response_reserve_tokens=0, always_keep_last_n=4)
    out = ContextWindowManager(policy, counter=FlatCounter()).apply(_history(5))
    assert [m["content"] for m in out] == ["sys", "u3", "a3", "u4", "a4"]


def test_fits_already_is_unchanged():
    policy = ContextPolicy(max_input_tokens=10_000)
    msgs = _history(2)
    assert ContextWindowManager(policy, counter=FlatCounter()).apply(msgs) == msgs
    assert ContextWindowManager(policy, counter=FlatCounter()).apply([]) == []


def test_policy_from_config():
    assert ContextPolicy.from_config(None) is None
    p = ContextPolicy.from_config({"max_input_tokens": "4000", "always_keep_last_n": 2})
    assert p.max_input_tokens == 4000 and p.always_keep_last_n == 2 and p.response_reserve_tokens == 1024


def test_counter_falls_back_without_encoding(monkeypatch):
    def boom(name):
        raise OSError("offline")

    monkeypatch.setattr(ctx.tiktoken, "get_encoding", boom)
    counter = TokenCounter()
    assert counter.count_text("") == 0
    assert counter.count_text("abcdefgh") == 2
    msgs = [{"role": "user", "content": "abcd", "attachments": [{"type": "image", "url": "x"}]}]
    assert counter.count_messages(msgs) == 4 + 1 + 85
