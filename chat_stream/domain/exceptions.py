"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError。
流式会话中只有“请求发起阶段”的错误会越过会话边界（经 on_error 回调），
解析层面的问题全部在解码器内部吸收。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "API_ERROR"）。
        message: 用户可读错误信息，会原样传给 on_error。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 url、detail 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、连接超时等。"""


class ApiError(BusinessError):
    """远端返回非 2xx/429 状态，或响应没有可读取的流。"""


class RateLimitError(BusinessError):
    """远端限流（HTTP 429），重试/退避由调用方负责。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class StreamStateError(BusinessError):
    """单次消费的流被重复使用。"""
