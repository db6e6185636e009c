# tests/unit/test_decoder.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from unichat.protocol.decoder import (
    DONE,
    FRAMING_NDJSON,
    FRAMING_SSE,
    StreamDecoder,
    framing_for_content_type,
)


def test_data_lines_only():
    d = StreamDecoder()
    out = d.feed(b'event: message\ndata: {"a":1}\n\n: keep-alive\nid: 7\ndata:{"b":2}\n')
    assert out == ['{"a":1}', '{"b":2}']


def test_split_line_is_buffered_until_terminator():
    d = StreamDecoder()
    assert d.feed(b'data: {"result":"he') == []
    assert d.feed(b'llo","is_end":false}\n') == ['{"result":"hello","is_end":false}']


def test_every_split_point_decodes_the_same():
    wire = 'data: {"result":"héllo","is_end":false}\r\n\r\ndata: {"result":"!","is_end":true}\n'.encode("utf-8")
    expected = ['{"result":"héllo","is_end":false}', '{"result":"!","is_end":true}']
    for i in range(len(wire) + 1):
        d = StreamDecoder()
        out = d.feed(wire[:i]) + d.feed(wire[i:]) + d.flush()
        assert out == expected, f"split at {i}"


def test_done_sentinel_ends_and_ignores_rest():
    d = StreamDecoder()
    out = d.feed(b'data: {"x":1}\ndata: [DONE]\ndata: {"late":true}\n')
    assert out == ['{"x":1}', DONE]
    assert d.finished
    assert d.feed(b'data: {"y":2}\n') == []
    assert d.flush() == []


def test_iter_chunks_stops_at_done_and_flushes_tail():
    d = StreamDecoder()
    assert list(d.iter_chunks([b'data: {"a":', b'1}\n', b"data: [DONE]\n", b"data: nope\n"])) == ['{"a":1}', DONE]

    d2 = StreamDecoder()
    # final line without a newline still counts once the input ends
    assert list(d2.iter_chunks([b'data: {"a":1}\ndata: {"b"', b":2}"])) == ['{"a":1}', '{"b":2}']


def test_ndjson_framing_keeps_bare_lines():
    d = StreamDecoder(FRAMING_NDJSON)
    out = d.feed(b'{"message":{"content":"a"}}\n\ndata: {"x":1}\n')
    assert out == ['{"message":{"content":"a"}}', '{"x":1}']


def test_framing_from_content_type():
    assert framing_for_content_type("text/event-stream; charset=utf-8") == FRAMING_SSE
    assert framing_for_content_type("application/x-ndjson") == FRAMING_NDJSON
    assert framing_for_content_type("application/json") == FRAMING_NDJSON
    assert framing_for_content_type("") == FRAMING_SSE


def test_unknown_framing_rejected():
    with pytest.raises(ValueError):
        StreamDecoder("xml")


def test_bare_cr_terminates_lines():
    d = StreamDecoder()
    assert d.feed(b'data: {"a":1}\r\rdata: {"b":2}\r') == ['{"a":1}', '{"b":2}']
    assert not d.finished


def test_crlf_split_across_reads_is_one_terminator():
    d = StreamDecoder(FRAMING_NDJSON)
    assert d.feed(b'{"a":1}\r') == ['{"a":1}']
    assert d.feed(b'\n{"b":2}\r\n') == ['{"b":2}']
    assert d.flush() == []
