"""
Unit Tests for SSEFrameParser

Tests that payload extraction does not depend on how the upstream body is
split into network chunks, plus sentinel and malformed payload handling.
"""

import pytest

from sse_relay.llm_stream.parsing.sse_parser import SSEFrameParser, decode_payload
from tests.test_fixtures import SSEBodyFactory


def parse_all(chunks: list[bytes]) -> list:
    parser = SSEFrameParser()
    payloads = []
    for chunk in chunks:
        payloads.extend(parser.feed(chunk))
    payloads.extend(parser.flush())
    return payloads


@pytest.mark.unit
class TestDecodePayload:
    """Test classification of single payloads."""

    @pytest.mark.parametrize("raw", ["[DONE]", '"[DONE]"'])
    def test_sentinels(self, raw):
        payload = decode_payload(raw)
        assert payload.done
        assert not payload.is_malformed

    def test_json_value(self):
        payload = decode_payload('{"a": 1}')
        assert payload.data == {"a": 1}
        assert not payload.done

    def test_malformed(self):
        payload = decode_payload("{not json")
        assert payload.is_malformed
        assert payload.raw == "{not json"
        assert payload.data is None


@pytest.mark.unit
class TestChunkBoundaries:
    """Test chunk-boundary independence."""

    def test_whole_body(self):
        payloads = parse_all([SSEBodyFactory.hi_there()])

        assert [p.data["choices"][0]["delta"]["content"] for p in payloads[:2]] == ["Hi", " there"]
        assert payloads[2].done
        assert len(payloads) == 3

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
    def test_any_split_gives_same_payloads(self, size):
        body = SSEBodyFactory.hi_there()

        expected = [(p.raw, p.done) for p in parse_all([body])]
        actual = [(p.raw, p.done) for p in parse_all(SSEBodyFactory.split(body, size))]

        assert actual == expected

    def test_split_inside_multibyte_character(self):
        body = SSEBodyFactory.body(SSEBodyFactory.delta("héllo ✓"), "[DONE]")

        payloads = parse_all(SSEBodyFactory.split(body, 1))

        assert payloads[0].data["choices"][0]["delta"]["content"] == "héllo ✓"

    def test_crlf_line_endings(self):
        body = SSEBodyFactory.hi_there().replace(b"\n", b"\r\n")

        payloads = parse_all(SSEBodyFactory.split(body, 3))

        assert len(payloads) == 3
        assert payloads[-1].done

    def test_incomplete_block_is_held_back(self):
        parser = SSEFrameParser()

        assert parser.feed(b'data: {"a"') == []
        assert parser.pending == 'data: {"a"'
        assert [p.data for p in parser.feed(b": 1}\n\n")] == [{"a": 1}]


@pytest.mark.unit
class TestBlockContents:
    """Test line handling inside blocks."""

    def test_non_data_lines_ignored(self):
        body = b": keep-alive\n\nevent: message\nid: 7\nretry: 10\ndata: {\"x\": 1}\n\n"

        payloads = parse_all([body])

        assert [p.data for p in payloads] == [{"x": 1}]

    def test_each_data_line_is_a_payload(self):
        payloads = parse_all([b'data: {"x": 1}\ndata: {"x": 2}\n\n'])
        assert [p.data for p in payloads] == [{"x": 1}, {"x": 2}]

    def test_data_without_space(self):
        assert parse_all([b'data:{"x": 1}\n\n'])[0].data == {"x": 1}

    def test_malformed_payload_reported_and_parsing_continues(self):
        payloads = parse_all([b"data: {broken\n\n", b'data: {"ok": true}\n\n'])

        assert payloads[0].is_malformed
        assert payloads[1].data == {"ok": True}


@pytest.mark.unit
class TestTermination:
    """Test the sentinel and end-of-body handling."""

    @pytest.mark.parametrize("sentinel", ["[DONE]", '"[DONE]"'])
    def test_sentinel_stops_parsing(self, sentinel):
        parser = SSEFrameParser()
        body = SSEBodyFactory.body(sentinel, SSEBodyFactory.delta("late"))

        payloads = parser.feed(body)

        assert len(payloads) == 1
        assert payloads[0].done
        assert parser.finished
        assert parser.feed(SSEBodyFactory.frame(SSEBodyFactory.delta("later"))) == []
        assert parser.flush() == []

    def test_flush_parses_unterminated_trailing_block(self):
        parser = SSEFrameParser()

        assert parser.feed(b'data: {"tail": 1}') == []
        assert [p.data for p in parser.flush()] == [{"tail": 1}]
        assert parser.pending == ""

    def test_flush_of_empty_buffer(self):
        assert SSEFrameParser().flush() == []
