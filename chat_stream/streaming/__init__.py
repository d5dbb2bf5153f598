"""流式读取层。

- reader: 字节块 → 文本 → FrameDecoder 的读取循环 (StreamReader)。
- accumulator: 把增量累计成完整的助手回复 (ResponseAccumulator)。
"""

from chat_stream.streaming.accumulator import ResponseAccumulator
from chat_stream.streaming.reader import StreamReader

__all__ = ["ResponseAccumulator", "StreamReader"]
