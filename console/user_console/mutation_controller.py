"""
用户变更控制器 (User Mutation Controller)

负责创建、更新、删除用户：
  - 创建/更新前做完整的客户端校验，任一字段失败直接返回字段错误，不发请求
  - 服务端的重复邮箱/手机号错误映射为对应字段的错误
  - 不持有列表状态，成功后由调用方决定是否刷新列表
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from user_console.api_client import ApiResult, UserApiClient
from user_console.errors import ConflictError, ConsoleError, ValidationError
from user_console.schemas import UserForm, UserRecord
from user_console.validation import GENERAL, FieldErrors, validate_form

logger = logging.getLogger(__name__)

T = TypeVar("T")

DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"
DUPLICATE_MOBILE_MESSAGE = "A user with this mobile number already exists"


@dataclass
class MutationResult(Generic[T]):
    """变更结果：成功时 value 有值；失败时 field_errors 说明要高亮的字段。"""
    value: Optional[T] = None
    field_errors: FieldErrors = field(default_factory=dict)
    error: Optional[ConsoleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.field_errors


def translate_error(error: ConsoleError, fallback: str) -> FieldErrors:
    """
    把服务端错误映射为字段错误 (Map a server error onto form fields)

    依赖服务端错误文案的子串匹配：包含 "email" 归到 email 字段，
    包含 "mobile number" 归到 mobile_number 字段，其余归到 general。
    """
    message = error.message or fallback
    if isinstance(error, (ConflictError, ValidationError)):
        lowered = message.lower()
        duplicate = isinstance(error, ConflictError)
        if "email" in lowered:
            return {"email": DUPLICATE_EMAIL_MESSAGE if duplicate else message}
        if "mobile number" in lowered:
            return {"mobile_number": DUPLICATE_MOBILE_MESSAGE if duplicate else message}
    return {GENERAL: message}


class MutationController:
    def __init__(self, api: UserApiClient):
        self._api = api

    async def create(self, form: UserForm) -> MutationResult[UserRecord]:
        return await self._submit("create", form, lambda: self._api.create_user(form))

    async def update(self, user_id: Any, form: UserForm) -> MutationResult[UserRecord]:
        return await self._submit("update", form, lambda: self._api.update_user(user_id, form))

    async def remove(self, user_id: Any) -> MutationResult[None]:
        result = await self._api.delete_user(user_id)
        if result.ok:
            logger.info(f"User {user_id} deleted")
            return MutationResult()
        return MutationResult(
            error=result.error,
            field_errors={GENERAL: result.error.message or "Failed to delete user"},
        )

    async def _submit(self, action: str, form: UserForm, call) -> MutationResult[UserRecord]:
        errors = validate_form(form)
        if errors:
            logger.debug(f"Skip {action}: validation failed for {sorted(errors)}")
            return MutationResult(field_errors=errors)

        result: ApiResult[UserRecord] = await call()
        if result.ok:
            logger.info(f"User {action}d successfully: id={result.value.id}")
            return MutationResult(value=result.value)
        return MutationResult(
            error=result.error,
            field_errors=translate_error(result.error, f"Failed to {action} user"),
        )
