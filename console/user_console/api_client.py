"""
用户服务 API 客户端 (User Service API Client)

封装对远端 REST API 的全部调用，统一解包 {error, payload} 响应信封并归一化错误。
所有操作返回 ApiResult(value, error)，HTTP 错误、信封错误和网络错误都不会越过本层抛出。

Endpoints:
    GET    /api/users          列表（筛选 + 分页 + 排序）
    GET    /api/users/{id}     详情
    POST   /api/users          创建
    PUT    /api/users/{id}     更新（允许部分字段）
    DELETE /api/users/{id}     删除
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar, Union

import httpx
from pydantic import ValidationError as SchemaError

from user_console.config import ConsoleConfig
from user_console.errors import (
    ConflictError,
    ConsoleError,
    InvalidArgument,
    ServerError,
    UnknownError,
    ValidationError,
    error_for_status,
)
from user_console.query_codec import query_params
from user_console.schemas import FilterSet, PaginationSpec, UserForm, UserPage, UserRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

USERS_PATH = "/api/users"
# 服务端分配的字段，不出现在请求体中
SERVER_FIELDS = ("id", "createdAt", "updatedAt", "created_at", "updated_at")

UserData = Union[UserForm, Mapping[str, Any]]


@dataclass
class ApiResult(Generic[T]):
    """API 调用结果，value 与 error 二选一。"""
    value: Optional[T] = None
    error: Optional[ConsoleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """成功时返回 value，失败时抛出携带的错误。"""
        if self.error is not None:
            raise self.error
        return self.value


def _status_message(status: int, data: Any) -> str:
    """按状态码生成错误信息，优先使用服务端 payload。"""
    payload = data.get("payload") if isinstance(data, dict) else None
    if not isinstance(payload, str) or not payload:
        payload = None
    if status == 404:
        return "User not found"
    if status == 409:
        return payload or "Duplicate data detected"
    if status == 400:
        return payload or "Invalid data provided"
    if status >= 500:
        return "Server error. Please try again later."
    return payload or f"Request failed with status {status}"


def _coerce_id(user_id: Any) -> int:
    """校验用户 ID，非法时直接抛出 InvalidArgument，不发起请求。"""
    if isinstance(user_id, bool) or user_id is None:
        raise InvalidArgument("User ID is required")
    if isinstance(user_id, str):
        user_id = user_id.strip()
        if not user_id.isdigit():
            raise InvalidArgument("User ID is required")
        user_id = int(user_id)
    if not isinstance(user_id, int) or user_id < 1:
        raise InvalidArgument("User ID is required")
    return user_id


def _body(data: Optional[UserData]) -> Dict[str, Any]:
    if data is None:
        raise InvalidArgument("User data is required")
    body = data.to_payload() if isinstance(data, UserForm) else dict(data)
    if not body:
        raise InvalidArgument("User data is required")
    return {k: v for k, v in body.items() if k not in SERVER_FIELDS}


class UserApiClient:
    """
    用户服务 HTTP 客户端 (User Service HTTP Client)

    基于 httpx.AsyncClient，懒加载连接；可注入现成的 httpx 客户端或 transport（测试使用
    ASGITransport 直接调用进程内应用）。注入的客户端由调用方负责关闭。
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout: float = 30,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: ConsoleConfig, **kwargs) -> "UserApiClient":
        return cls(base_url=config.api.base_url, timeout=config.api.timeout, **kwargs)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "UserApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── 请求与信封解包 ────────────────────────────────────────────────

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> ApiResult[Any]:
        client = self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            return self._fail(operation, ServerError(f"Request timed out: {e}", raw_payload=None))
        except httpx.HTTPError as e:
            return self._fail(operation, ServerError(f"Unable to reach server: {e}", raw_payload=None))

        try:
            payload = self._unwrap(resp)
        except ConsoleError as e:
            return self._fail(operation, e)
        return ApiResult(value=payload)

    @staticmethod
    def _unwrap(resp: httpx.Response) -> Any:
        """
        解包 {error, payload} 响应信封 (Unwrap the response envelope)

        - 非 2xx：按状态码映射异常类型
        - 2xx 但 error=true：视为逻辑失败，"already exists" 归为冲突，其余归为校验失败
        - 2xx 且无响应体（如 204）：返回 None
        - 信封格式不符：UnknownError
        """
        try:
            data = resp.json() if resp.content else None
        except ValueError:
            data = None

        if not resp.is_success:
            raise error_for_status(resp.status_code, _status_message(resp.status_code, data), data)

        if data is None and not resp.content:
            return None
        if not isinstance(data, dict) or "error" not in data:
            raise UnknownError("Malformed response from server", http_status=resp.status_code, raw_payload=data)

        payload = data.get("payload")
        if data["error"]:
            message = payload if isinstance(payload, str) and payload else "An error occurred"
            cls = ConflictError if "already exists" in message.lower() else ValidationError
            raise cls(message, http_status=resp.status_code, raw_payload=data)
        return payload

    @staticmethod
    def _fail(operation: str, error: ConsoleError) -> ApiResult[Any]:
        logger.error(f"Error {operation}: {error.message} (kind={error.kind}, status={error.http_status})")
        return ApiResult(error=error)

    @staticmethod
    def _parse(operation: str, result: ApiResult[Any], parser) -> ApiResult[Any]:
        if not result.ok:
            return result
        try:
            return ApiResult(value=parser(result.value))
        except (SchemaError, TypeError, AttributeError) as e:
            return UserApiClient._fail(
                operation, UnknownError(f"Unexpected response format: {e}", raw_payload=result.value)
            )

    # ── 公开操作 ──────────────────────────────────────────────────────

    async def list_users(
        self,
        filters: Optional[FilterSet] = None,
        pagination: Optional[PaginationSpec] = None,
    ) -> ApiResult[UserPage]:
        """获取用户列表，只携带有值的筛选和分页参数。"""
        params = query_params(filters or FilterSet(), pagination or PaginationSpec())
        logger.debug(f"Fetching users with params: {params}")
        result = await self._request("fetching users", "GET", USERS_PATH, params=params)
        return self._parse("fetching users", result, UserPage.from_payload)

    async def get_user(self, user_id: Any) -> ApiResult[UserRecord]:
        try:
            user_id = _coerce_id(user_id)
        except InvalidArgument as e:
            return self._fail("fetching user", e)
        operation = f"fetching user {user_id}"
        result = await self._request(operation, "GET", f"{USERS_PATH}/{user_id}")
        return self._parse(operation, result, UserRecord.model_validate)

    async def create_user(self, data: Optional[UserData]) -> ApiResult[UserRecord]:
        try:
            body = _body(data)
        except InvalidArgument as e:
            return self._fail("creating user", e)
        result = await self._request("creating user", "POST", USERS_PATH, json=body)
        return self._parse("creating user", result, UserRecord.model_validate)

    async def update_user(self, user_id: Any, data: Optional[UserData]) -> ApiResult[UserRecord]:
        try:
            user_id = _coerce_id(user_id)
            body = _body(data)
        except InvalidArgument as e:
            return self._fail("updating user", e)
        operation = f"updating user {user_id}"
        result = await self._request(operation, "PUT", f"{USERS_PATH}/{user_id}", json=body)
        return self._parse(operation, result, UserRecord.model_validate)

    async def delete_user(self, user_id: Any) -> ApiResult[None]:
        try:
            user_id = _coerce_id(user_id)
        except InvalidArgument as e:
            return self._fail("deleting user", e)
        result = await self._request(f"deleting user {user_id}", "DELETE", f"{USERS_PATH}/{user_id}")
        return ApiResult(error=result.error)
