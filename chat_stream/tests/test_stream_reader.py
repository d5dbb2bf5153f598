import asyncio

import pytest

from chat_stream.domain.exceptions import StreamStateError
from chat_stream.streaming.reader import StreamReader


def line(content: str) -> bytes:
    return ('data: {"choices":[{"delta":{"content":"%s"}}]}\n' % content).encode("utf-8")


def test_reader_carries_split_multibyte_sequences():
    body = line("你好")
    cut = body.index("你".encode("utf-8")) + 1
    reader = StreamReader()
    events = list(reader.iter_deltas([body[:cut], body[cut:]]))
    assert [e.text for e in events] == ["你好"]


def test_reader_stops_pulling_after_done():
    pulled = []

    def chunks():
        for chunk in [line("a"), b"data: [DONE]\n", line("late")]:
            pulled.append(chunk)
            yield chunk

    reader = StreamReader()
    events = list(reader.iter_deltas(chunks()))
    assert [e.text for e in events] == ["a"]
    assert len(pulled) == 2
    assert reader.decoder.completed is True


def test_reader_flushes_unterminated_tail_at_end_of_stream():
    reader = StreamReader()
    body = line("x") + line("y").rstrip(b"\n")
    events = list(reader.iter_deltas([body]))
    assert [e.text for e in events] == ["x", "y"]
    assert reader.decoder.completed is False


def test_reader_replaces_invalid_bytes():
    reader = StreamReader()
    events = list(reader.iter_deltas([b'data: {"choices":[{"delta":{"content":"a\xffb"}}]}\n']))
    assert [e.text for e in events] == ["a\ufffdb"]


def test_reader_is_single_pass():
    reader = StreamReader()
    assert list(reader.iter_deltas([line("a")])) != []
    with pytest.raises(StreamStateError):
        list(reader.iter_deltas([line("a")]))


def test_async_reader_matches_sync():
    async def chunks():
        for chunk in [b": ping\n\n", line("He")[:10], line("He")[10:], line("y"), b"data: [DONE]\n", line("z")]:
            yield chunk

    async def collect():
        reader = StreamReader()
        return [e.text async for e in reader.aiter_deltas(chunks())]

    assert asyncio.run(collect()) == ["He", "y"]
