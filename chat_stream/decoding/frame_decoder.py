"""SSE 帧解码器。

把任意切分的文本块重新拼成完整的行，识别协议帧并抽取增量文本：

- `:` 开头：注释，忽略。
- 空行（含仅空白）：帧分隔，忽略。
- `data: [DONE]`：结束标记，置 completed。
- `data: {json}`：取 `choices[0].delta.content` 作为一次增量。
- 其他：忽略（宽松解析，不做校验）。

解码器是纯同步逻辑，不做任何 IO；一个实例只服务一次会话，不可并发调用。
"""

import json
from typing import Any, List, Optional

from chat_stream.config.settings import settings
from chat_stream.domain.models import DONE_SENTINEL, DeltaEvent, Frame, FrameKind
from chat_stream.infrastructure.logging.logger import logger


DATA_PREFIX = "data: "
LINE_TERMINATOR = "\n"


def classify_line(line: str) -> Frame:
    """对一行（已去掉行尾 \\r）做帧分类。"""

    if line.startswith(":"):
        return Frame(FrameKind.COMMENT)
    if line.strip() == "":
        return Frame(FrameKind.BLANK)
    if line.startswith(DATA_PREFIX):
        return Frame(FrameKind.DATA, line[len(DATA_PREFIX):].strip())
    return Frame(FrameKind.UNRECOGNIZED)


def extract_delta(payload: str) -> Optional[str]:
    """解析 data 帧的 JSON 信封，返回 `choices[0].delta.content`。

    JSON 本身不合法（包括被截断）时抛出 ValueError；
    结构中任一层缺失或类型不符时返回 None，而不是报错。
    """

    envelope: Any = json.loads(payload)
    if not isinstance(envelope, dict):
        return None
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class FrameDecoder:
    """有状态的帧解码器。

    - pending_text: 已收到但还没解析成完整单元的文本。只有整行被消费
      或会话结束时才会被丢弃。
    - completed: 收到 `[DONE]` 后置 True，之后不再复位。

    JSON 解析失败时，原始行会被放回缓冲区最前面，等下一次 feed 补齐数据后重试。
    如果这一行本身就是坏的，之后每次 feed 都会在同一位置失败，后续增量全部停滞；
    这里只计数并记录日志，不向调用方报错。
    """

    def __init__(self, stall_warning_threshold: Optional[int] = None):
        self._pending = ""
        self._completed = False
        self._emitted = 0
        self._stalled_line: Optional[str] = None
        self._stalled_retries = 0
        if stall_warning_threshold is None:
            stall_warning_threshold = settings.stall_warning_threshold
        self._stall_warning_threshold = stall_warning_threshold

    @property
    def pending_text(self) -> str:
        return self._pending

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def stalled_retries(self) -> int:
        """同一行连续重试失败的次数（首次失败不计入）。"""

        return self._stalled_retries

    def feed(self, text: str) -> List[DeltaEvent]:
        """追加新到达的文本，返回本次解析出的增量（按到达顺序）。"""

        self._pending += text
        events: List[DeltaEvent] = []
        # 收到 [DONE] 之后只追加，不再解析
        while not self._completed:
            newline_index = self._pending.find(LINE_TERMINATOR)
            if newline_index == -1:
                break
            raw_line = self._pending[:newline_index]
            self._pending = self._pending[newline_index + 1:]
            line = raw_line[:-1] if raw_line.endswith("\r") else raw_line

            frame = classify_line(line)
            if frame.kind is not FrameKind.DATA:
                continue
            if frame.payload == DONE_SENTINEL:
                self._completed = True
                break
            try:
                delta = extract_delta(frame.payload)
            except ValueError:
                # 可能是行被截断，放回原样等待更多数据
                self._pending = raw_line + LINE_TERMINATOR + self._pending
                self._note_retry(raw_line)
                break
            self._clear_retry()
            if delta:
                events.append(self._emit(delta))
        return events

    def flush(self) -> List[DeltaEvent]:
        """没有更多数据时，尽力解析剩余缓冲区。

        最后一段没有换行符的文本也按完整行处理；解析失败直接丢弃。
        对空缓冲区调用是安全的空操作。
        """

        remaining, self._pending = self._pending, ""
        events: List[DeltaEvent] = []
        if not remaining.strip():
            return events
        for raw_line in remaining.split(LINE_TERMINATOR):
            line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
            frame = classify_line(line)
            if frame.kind is not FrameKind.DATA:
                continue
            if frame.payload == DONE_SENTINEL:
                self._completed = True
                continue
            try:
                delta = extract_delta(frame.payload)
            except ValueError:
                logger.info(
                    "Dropped unparseable frame on flush",
                    extra={"extra": {"event": "frame_dropped", "length": len(line)}},
                )
                continue
            if delta:
                events.append(self._emit(delta))
        self._clear_retry()
        return events

    # ---- 辅助方法 ----

    def _emit(self, text: str) -> DeltaEvent:
        event = DeltaEvent(text=text, index=self._emitted)
        self._emitted += 1
        return event

    def _note_retry(self, raw_line: str) -> None:
        if raw_line != self._stalled_line:
            self._stalled_line = raw_line
            self._stalled_retries = 0
        else:
            self._stalled_retries += 1
        # 阈值为 0 时首次失败即告警
        if self._stalled_retries == self._stall_warning_threshold:
            logger.warning(
                "Frame decoder stalled on an unparseable line",
                extra={"extra": {
                    "event": "decoder_stalled",
                    "retries": self._stalled_retries,
                    "length": len(raw_line),
                }},
            )

    def _clear_retry(self) -> None:
        self._stalled_line = None
        self._stalled_retries = 0
