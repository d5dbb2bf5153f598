"""流式对话的数据模型。

- ConversationMessage: 发给远端的一条对话消息（仅 user/assistant）。
- DeltaEvent: 从一帧 data 行中解析出的增量文本。
- Frame / FrameKind: 一行协议文本的分类结果，只在解码过程中短暂存在。

会话历史由调用方持有，整段传入，会话期间不可变。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Literal, Mapping

from chat_stream.domain.exceptions import ValidationError


# 流结束标记：`data: [DONE]`
DONE_SENTINEL = "[DONE]"

Role = Literal["user", "assistant"]

_ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ConversationMessage:
    """一条对话消息。

    - role: 消息角色，只允许 user / assistant。
    - content: 纯文本内容。
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValidationError(
                code="INVALID_ROLE",
                message=f"Unsupported message role: {self.role!r}",
                role=self.role,
            )

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationMessage":
        return cls(role=data.get("role"), content=data.get("content") or "")


@dataclass(frozen=True)
class DeltaEvent:
    """一次增量文本。

    - text: `choices[0].delta.content` 中的非空文本。
    - index: 在本次会话中的到达序号（从 0 开始）。
    """

    text: str
    index: int


class FrameKind(str, Enum):
    COMMENT = "comment"
    BLANK = "blank"
    DATA = "data"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Frame:
    """一行协议文本的分类结果，payload 仅对 data 帧有意义。"""

    kind: FrameKind
    payload: str = ""
