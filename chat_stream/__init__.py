"""chat_stream 顶层包。

该包实现流式对话响应的增量解码：
读取分块到达的 SSE 风格响应体，重组被切断的行，识别注释/空行/数据帧/结束标记，
解析每个数据帧的 JSON 信封并逐段产出增量文本，供 UI 做“打字”效果。
"""

from chat_stream.api.service import astream_chat, stream_chat
from chat_stream.decoding.frame_decoder import FrameDecoder
from chat_stream.domain.models import ConversationMessage, DeltaEvent
from chat_stream.providers.chat_client import ChatStreamClient
from chat_stream.streaming.accumulator import ResponseAccumulator
from chat_stream.streaming.reader import StreamReader

__all__ = [
    "ChatStreamClient",
    "ConversationMessage",
    "DeltaEvent",
    "FrameDecoder",
    "ResponseAccumulator",
    "StreamReader",
    "astream_chat",
    "stream_chat",
]
