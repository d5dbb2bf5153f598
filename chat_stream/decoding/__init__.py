"""SSE 帧解码。

- frame_decoder: 行重组、帧分类与增量抽取 (FrameDecoder)。
"""

from chat_stream.decoding.frame_decoder import FrameDecoder, classify_line, extract_delta

__all__ = ["FrameDecoder", "classify_line", "extract_delta"]
