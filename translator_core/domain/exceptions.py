"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在编排层或 UI 层做统一捕获与用户提示。

Chat Completion 客户端只会抛出下列几类错误：

- MissingCredentialError: 未配置 API Key，不发起任何网络请求。
- InvalidResponseError: 响应不是预期的 JSON 结构。
- UnauthorizedError: 401，凭证无效。
- RateLimitError: 429 且重试额度已用尽。
- ServerError: 5xx 重试用尽，或其他不可重试的非 2xx 状态。
- TransportError: 网络层失败（超时、断连、DNS 等）。
- EmptyResponseError: 第一条 choice 没有内容。
- RequestCancelledError: 调用方取消，与失败区分开。
"""

from typing import Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "RATE_LIMIT"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class MissingCredentialError(ValidationError):
    """未配置 OPENAI_API_KEY。属于配置错误，不重试。"""

    def __init__(self, message: str = "Missing OpenAI API Key. Please set OPENAI_API_KEY in your environment."):
        super().__init__(code="MISSING_API_KEY", message=message)


class InvalidResponseError(BusinessError):
    """响应体无法解析为 chat completion 结构。"""

    def __init__(self, detail: str = ""):
        message = "Received an invalid response from the OpenAI API."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(code="INVALID_RESPONSE", message=message, http_status=502)
        self.detail = detail


class ApiError(BusinessError):
    """第三方 API 返回非 2xx 时抛出的基类。"""


class UnauthorizedError(ApiError):
    def __init__(self, detail: str = ""):
        super().__init__(
            code="UNAUTHORIZED",
            message="The OpenAI API rejected the credential (401). Check OPENAI_API_KEY.",
            http_status=401,
        )
        self.detail = detail


class RateLimitError(ApiError):
    """Provider 限流，重试额度用尽后抛出。"""

    def __init__(self, detail: str = ""):
        super().__init__(
            code="RATE_LIMIT",
            message=f"OpenAI API rate limit reached: {detail or 'too many requests'}",
            http_status=429,
        )
        self.detail = detail


class ServerError(ApiError):
    def __init__(self, status: int, detail: str = ""):
        super().__init__(
            code="SERVER_ERROR",
            message=f"OpenAI API error ({status}): {detail or 'Unknown error'}",
            http_status=status,
        )
        self.status = status
        self.detail = detail


class TransportError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""

    def __init__(self, detail: str, retryable: Optional[bool] = None):
        super().__init__(code="NETWORK_ERROR", message=f"Network error: {detail}", http_status=503)
        self.detail = detail
        self.retryable = retryable


class EmptyResponseError(BusinessError):
    def __init__(self):
        super().__init__(
            code="EMPTY_RESPONSE",
            message="The OpenAI API returned an empty response.",
            http_status=502,
        )


class RequestCancelledError(BusinessError):
    """调用方取消了请求（包括退避等待期间）。"""

    def __init__(self):
        super().__init__(code="CANCELLED", message="Request cancelled.", http_status=499)
