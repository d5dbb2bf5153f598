"""远端对话端点集成层。

- chat_client: 发起流式请求、处理发起阶段错误、驱动 StreamReader (ChatStreamClient)。
"""

from chat_stream.providers.chat_client import ChatStreamClient

__all__ = ["ChatStreamClient"]
