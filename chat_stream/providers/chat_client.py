"""流式对话端点客户端。

本模块负责：

1. 把对话历史转换为 `{ "messages": [...] }` 请求体，单次 POST。
2. 处理请求发起阶段的错误（网络/限流/非 2xx/无响应流），统一包装为业务异常。
3. 把响应体的字节块交给 StreamReader，逐个产出 DeltaEvent。
4. 提供回调风格的 stream_chat：on_delta 逐段触发，最后 on_done 或 on_error 二选一且只触发一次。

读取过程中的传输错误（断线、单块读取超时）不视为错误，只当作流提前结束。
"""

import json
from contextlib import aclosing, closing
from typing import Any, AsyncIterator, Callable, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

import httpx

from chat_stream.config.settings import settings
from chat_stream.domain.exceptions import (
    ApiError,
    BusinessError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from chat_stream.domain.models import ConversationMessage, DeltaEvent
from chat_stream.infrastructure.logging.logger import logger
from chat_stream.streaming.reader import StreamReader


DEFAULT_ERROR_MESSAGE = "Failed to connect to AI assistant"
NO_STREAM_MESSAGE = "No response stream"

MessageLike = Union[ConversationMessage, Mapping[str, Any]]
DeltaCallback = Callable[[str], Any]
DoneCallback = Callable[[], Any]
ErrorCallback = Callable[[str], Any]


class ChatStreamClient:
    """流式对话客户端，每次调用对应一次独立会话。"""

    name = "chat-stream"

    def __init__(self, cfg=settings):
        # Settings 里包含端点 URL、密钥与超时配置
        self._settings = cfg

    # ---- 迭代器风格 ----

    def iter_deltas(self, messages: Sequence[MessageLike]) -> Iterator[DeltaEvent]:
        """发起请求并逐个产出增量。

        惰性执行：请求在第一次取值时才发出，发起阶段的错误也在那时抛出。
        """

        url, payload, headers = self._prepare(messages)
        try:
            with httpx.Client(timeout=self._timeout(), trust_env=False) as client:
                with client.stream("POST", url, json=payload, headers=headers) as resp:
                    if not 200 <= resp.status_code < 300:
                        self._raise_for_status(resp.status_code, self._read_error_body(resp))
                    self._check_streamable(resp.status_code)
                    reader = StreamReader()
                    yield from reader.iter_deltas(self._iter_body(resp))
        except httpx.RequestError as e:
            raise NetworkError(
                code="NETWORK_ERROR",
                message=f"Could not reach the assistant: {e}",
                url=url,
            )
        except httpx.InvalidURL as e:
            raise ValidationError(code="INVALID_API_URL", message=f"Invalid CHAT_API_URL: {e}", url=url)

    async def aiter_deltas(self, messages: Sequence[MessageLike]) -> AsyncIterator[DeltaEvent]:
        """iter_deltas 的异步版本。"""

        url, payload, headers = self._prepare(messages)
        try:
            async with httpx.AsyncClient(timeout=self._timeout(), trust_env=False) as client:
                async with client.stream("POST", url, json=payload, headers=headers) as resp:
                    if not 200 <= resp.status_code < 300:
                        self._raise_for_status(resp.status_code, await self._aread_error_body(resp))
                    self._check_streamable(resp.status_code)
                    reader = StreamReader()
                    async for event in reader.aiter_deltas(self._aiter_body(resp)):
                        yield event
        except httpx.RequestError as e:
            raise NetworkError(
                code="NETWORK_ERROR",
                message=f"Could not reach the assistant: {e}",
                url=url,
            )
        except httpx.InvalidURL as e:
            raise ValidationError(code="INVALID_API_URL", message=f"Invalid CHAT_API_URL: {e}", url=url)

    # ---- 回调风格 ----

    def stream_chat(
        self,
        messages: Sequence[MessageLike],
        on_delta: DeltaCallback,
        on_done: DoneCallback,
        on_error: ErrorCallback,
    ) -> None:
        """回调风格的会话入口。

        on_delta 按到达顺序逐段触发；正常结束时 on_done 触发一次；
        请求发起失败时只触发一次 on_error，且不会再触发 on_done。
        回调自身抛出的异常原样向上传播。
        """

        with closing(self.iter_deltas(messages)) as events:
            try:
                first = next(events, None)
            except BusinessError as exc:
                self._log_failure(exc)
                on_error(exc.message)
                return
            if first is not None:
                on_delta(first.text)
                for event in events:
                    on_delta(event.text)
        on_done()

    async def astream_chat(
        self,
        messages: Sequence[MessageLike],
        on_delta: DeltaCallback,
        on_done: DoneCallback,
        on_error: ErrorCallback,
    ) -> None:
        async with aclosing(self.aiter_deltas(messages)) as events:
            try:
                first = await anext(events, None)
            except BusinessError as exc:
                self._log_failure(exc)
                on_error(exc.message)
                return
            if first is not None:
                on_delta(first.text)
                async for event in events:
                    on_delta(event.text)
        on_done()

    # ---- 辅助方法 ----

    def _prepare(self, messages: Sequence[MessageLike]) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        url = getattr(self._settings, "chat_api_url", None)
        if not url:
            raise ValidationError(code="MISSING_API_URL", message="CHAT_API_URL not set")
        api_key = getattr(self._settings, "chat_api_key", None)
        if not api_key:
            raise ValidationError(code="MISSING_API_KEY", message="CHAT_API_KEY not set")
        payload = {"messages": [m.to_payload() for m in self._coerce_messages(messages)]}
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        return url, payload, headers

    @staticmethod
    def _coerce_messages(messages: Sequence[MessageLike]) -> List[ConversationMessage]:
        coerced: List[ConversationMessage] = []
        for idx, m in enumerate(messages):
            if isinstance(m, ConversationMessage):
                coerced.append(m)
            elif isinstance(m, Mapping):
                coerced.append(ConversationMessage.from_dict(m))
            else:
                raise ValidationError(
                    code="INVALID_MESSAGE",
                    message=f"Message #{idx} must be a ConversationMessage or mapping, got {type(m).__name__}",
                )
        return coerced

    def _timeout(self) -> httpx.Timeout:
        # read 超时作用于每一次分块读取，防止远端挂起导致无限等待
        return httpx.Timeout(
            self._settings.http_timeout,
            read=getattr(self._settings, "chunk_read_timeout", self._settings.http_timeout),
        )

    @staticmethod
    def _read_error_body(resp: httpx.Response) -> bytes:
        try:
            return resp.read()
        except httpx.HTTPError:
            return b""

    @staticmethod
    async def _aread_error_body(resp: httpx.Response) -> bytes:
        try:
            return await resp.aread()
        except httpx.HTTPError:
            return b""

    @classmethod
    def _raise_for_status(cls, status: int, body: bytes) -> None:
        message = cls._error_message(body)
        if status == 429:
            # 限流交给调用方做重试/退避
            raise RateLimitError(code="RATE_LIMIT", message=message, http_status=status)
        raise ApiError(code="API_ERROR", message=message, http_status=status)

    @staticmethod
    def _check_streamable(status: int) -> None:
        if status == 204:
            raise ApiError(code="NO_STREAM", message=NO_STREAM_MESSAGE, http_status=status)

    @staticmethod
    def _error_message(body: bytes) -> str:
        """从错误响应体中取 `error` 字段，兼容 `{"error": {"message": ...}}`。"""

        try:
            data = json.loads(body) if body else None
        except ValueError:
            return DEFAULT_ERROR_MESSAGE
        if not isinstance(data, dict):
            return DEFAULT_ERROR_MESSAGE
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if isinstance(error, str) and error:
            return error
        return DEFAULT_ERROR_MESSAGE

    def _iter_body(self, resp: httpx.Response) -> Iterator[bytes]:
        try:
            yield from resp.iter_bytes()
        except httpx.RequestError as e:
            self._log_abort(e)

    async def _aiter_body(self, resp: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes():
                yield chunk
        except httpx.RequestError as e:
            self._log_abort(e)

    def _log_abort(self, exc: Exception) -> None:
        logger.warning(
            f"Stream ended abruptly: {exc}",
            extra={"extra": {"event": "stream_aborted", "error_type": type(exc).__name__}},
        )

    def _log_failure(self, exc: BusinessError) -> None:
        logger.error(
            f"Chat stream failed: {exc.message}",
            extra={"extra": {"event": "stream_failed", "code": exc.code, "http_status": exc.http_status}},
        )
