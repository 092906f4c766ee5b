"""
控制台异常模块 (Console Error Module)

定义控制台统一的错误分类，API 客户端、控制器和 CLI 共享同一套异常类型。
每个错误都携带 kind、message、http_status 和 raw_payload，调用方无需重新解析响应即可分支处理。

Defines the console's error taxonomy shared by the API client, the controllers
and the CLI. Every error carries kind, message, http_status and raw_payload so
callers can branch on it without re-parsing the response.
"""
from typing import Any, Optional


class ConsoleError(Exception):
    """控制台异常基类 (Base Console Error)"""
    kind: str = "unknown"

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        raw_payload: Any = None,
    ):
        self.message = message
        self.http_status = http_status
        self.raw_payload = raw_payload
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "http_status": self.http_status,
            "raw_payload": self.raw_payload,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, http_status={self.http_status!r})"


class InvalidArgument(ConsoleError):
    """本地前置条件失败，未发起网络请求 (Local precondition failure, no request made)"""
    kind = "invalid_argument"


class ValidationError(ConsoleError):
    """请求数据校验失败 (HTTP 400)"""
    kind = "validation_error"


class ConflictError(ConsoleError):
    """资源冲突，通常为邮箱或手机号重复 (HTTP 409)"""
    kind = "conflict"


class NotFoundError(ConsoleError):
    """资源不存在 (HTTP 404)"""
    kind = "not_found"


class ServerError(ConsoleError):
    """服务端错误或网络不可达 (HTTP >= 500 / transport failure)"""
    kind = "server_error"


class UnknownError(ConsoleError):
    """其他状态码或格式异常的响应 (Anything else, including malformed envelopes)"""
    kind = "unknown"


def error_for_status(status: int, message: str, raw_payload: Any = None) -> ConsoleError:
    """根据 HTTP 状态码选择对应的异常类型。"""
    if status == 404:
        cls = NotFoundError
    elif status == 400:
        cls = ValidationError
    elif status == 409:
        cls = ConflictError
    elif status >= 500:
        cls = ServerError
    else:
        cls = UnknownError
    return cls(message, http_status=status, raw_payload=raw_payload)
