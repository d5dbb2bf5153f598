"""流读取器。

负责把响应体的原始字节块增量解码为文本，逐块交给 FrameDecoder，
并根据传输结束或 `[DONE]` 决定何时停止读取。

分块边界不保证落在字符边界上，因此必须使用增量解码器保存未完成的多字节序列。
"""

import codecs
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Optional

from chat_stream.decoding.frame_decoder import FrameDecoder
from chat_stream.domain.exceptions import StreamStateError
from chat_stream.domain.models import DeltaEvent


class StreamReader:
    """单次会话的读取循环，只能消费一次。"""

    def __init__(self, decoder: Optional[FrameDecoder] = None, encoding: str = "utf-8"):
        self.decoder = decoder or FrameDecoder()
        self._encoding = encoding
        self._consumed = False

    def iter_deltas(self, chunks: Iterable[bytes]) -> Iterator[DeltaEvent]:
        """同步读取循环，逐个产出 DeltaEvent。"""

        text_decoder = self._start()
        for chunk in chunks:
            yield from self.decoder.feed(text_decoder.decode(chunk))
            if self.decoder.completed:
                # [DONE] 之后不再请求新的分块
                break
        yield from self._finish(text_decoder)

    async def aiter_deltas(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[DeltaEvent]:
        """异步读取循环，语义与 iter_deltas 相同。"""

        text_decoder = self._start()
        async for chunk in chunks:
            for event in self.decoder.feed(text_decoder.decode(chunk)):
                yield event
            if self.decoder.completed:
                break
        for event in self._finish(text_decoder):
            yield event

    def _start(self) -> codecs.IncrementalDecoder:
        if self._consumed:
            raise StreamStateError(code="STREAM_CONSUMED", message="Stream reader already consumed")
        self._consumed = True
        return codecs.getincrementaldecoder(self._encoding)(errors="replace")

    def _finish(self, text_decoder: codecs.IncrementalDecoder) -> Iterator[DeltaEvent]:
        tail = text_decoder.decode(b"", final=True)
        if tail:
            yield from self.decoder.feed(tail)
        yield from self.decoder.flush()
