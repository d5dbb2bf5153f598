"""对外 API 服务模块。

提供简化的函数接口供上层应用（聊天面板等）调用：传入对话历史和三个回调即可。
"""

from typing import Optional, Sequence

from chat_stream.config.settings import settings
from chat_stream.providers.chat_client import (
    ChatStreamClient,
    DeltaCallback,
    DoneCallback,
    ErrorCallback,
    MessageLike,
)


_client: Optional[ChatStreamClient] = None


def get_default_client() -> ChatStreamClient:
    """获取默认的 ChatStreamClient 实例（单例）。"""
    global _client
    if _client is None:
        _client = ChatStreamClient(settings)
    return _client


def stream_chat(
    messages: Sequence[MessageLike],
    on_delta: DeltaCallback,
    on_done: DoneCallback,
    on_error: ErrorCallback,
) -> None:
    """运行一次流式对话。

    Args:
        messages: 完整对话历史，ConversationMessage 或 {"role", "content"} 字典
        on_delta: 每段增量文本触发一次
        on_done: 正常结束时触发一次
        on_error: 请求发起失败时触发一次（与 on_done 互斥）
    """
    get_default_client().stream_chat(messages, on_delta, on_done, on_error)


async def astream_chat(
    messages: Sequence[MessageLike],
    on_delta: DeltaCallback,
    on_done: DoneCallback,
    on_error: ErrorCallback,
) -> None:
    """stream_chat 的异步版本。"""
    await get_default_client().astream_chat(messages, on_delta, on_done, on_error)
