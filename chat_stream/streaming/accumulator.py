"""助手回复累加器。

UI 层常见的“打字”效果：每收到一段增量就把已累计的全文写回对话历史的最后一条。
"""

from typing import List, Sequence

from chat_stream.domain.models import ConversationMessage


class ResponseAccumulator:
    """累计一次助手回复的全部增量，append 可直接作为 on_delta 回调。"""

    def __init__(self) -> None:
        self._parts: List[str] = []

    def append(self, text: str) -> None:
        self._parts.append(text)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def delta_count(self) -> int:
        return len(self._parts)

    def to_message(self) -> ConversationMessage:
        return ConversationMessage(role="assistant", content=self.text)

    def upsert_into(self, history: Sequence[ConversationMessage]) -> List[ConversationMessage]:
        """返回新的历史列表：末尾是助手消息则替换，否则追加。原列表不变。"""

        updated = list(history)
        if updated and updated[-1].role == "assistant":
            updated[-1] = self.to_message()
        else:
            updated.append(self.to_message())
        return updated
