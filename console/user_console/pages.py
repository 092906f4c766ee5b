"""
页面级组合 (Screen-level Composition)

把 FilterState、ListController、MutationController 按控制台各页面的用法组合起来：
  - UserListPage: 用户列表页，筛选变化触发重新加载，删除成功后刷新
  - UserFormSession: 创建/编辑表单状态，字段 touched 后实时校验
  - NewUserPage / EditUserPage: 表单页，保存成功或用户不存在时延迟跳回列表
"""
import asyncio
import logging
from typing import Any, Callable, Optional, Set

from user_console.api_client import UserApiClient
from user_console.errors import ConsoleError, InvalidArgument, NotFoundError
from user_console.filter_state import FilterState
from user_console.formatting import parse_date
from user_console.list_controller import ListController
from user_console.mutation_controller import MutationController, MutationResult
from user_console.query_store import QueryStore
from user_console.schemas import FORM_FIELDS, FilterSet, UserForm, UserRecord
from user_console.validation import GENERAL, FieldErrors, validate_field

logger = logging.getLogger(__name__)

LIST_PATH = "/users"

Navigator = Callable[[str], None]


class UserListPage:
    """用户列表页。"""

    def __init__(self, api: UserApiClient, store: QueryStore):
        self.filters = FilterState(store)
        self.list = ListController(api, store)
        self.mutations = MutationController(api)

    async def load(self) -> None:
        """首次加载：先从 URL 恢复筛选条件，再发起第一次请求。"""
        self.filters.hydrate()
        await self.list.fetch()

    async def set_filter(self, name: str, value: Any) -> FilterSet:
        filters = self.filters.set_filter(name, value)
        await self.list.fetch()
        return filters

    async def clear_filter(self, name: str) -> FilterSet:
        filters = self.filters.clear_filter(name)
        await self.list.fetch()
        return filters

    async def clear_all_filters(self) -> FilterSet:
        filters = self.filters.clear_all()
        await self.list.fetch()
        return filters

    async def delete_user(self, user_id: Any) -> MutationResult[None]:
        result = await self.mutations.remove(user_id)
        if result.ok:
            await self.list.refresh()
        return result


class UserFormSession:
    """
    用户表单会话 (User Form Session)

    create 模式从空表单开始，edit 模式用已有记录填充。字段失焦后标记为 touched，
    之后每次修改都重新校验该字段；提交时标记全部字段并做完整校验。
    """

    def __init__(self, mutations: MutationController, record: Optional[UserRecord] = None):
        self._mutations = mutations
        self.record = record
        self.form = UserForm.from_record(record) if record else UserForm()
        self.errors: FieldErrors = {}
        self.touched: Set[str] = set()
        self.submitting = False

    @property
    def is_edit(self) -> bool:
        return self.record is not None

    def change(self, name: str, value: Any) -> None:
        if name not in FORM_FIELDS:
            raise InvalidArgument(f"Unknown form field: {name}")
        if name == "birthday":
            value = parse_date(value)
        elif value is None:
            value = ""
        self.form = self.form.model_copy(update={name: value})
        if name in self.touched:
            self._revalidate(name)

    def blur(self, name: str) -> None:
        if name not in FORM_FIELDS:
            raise InvalidArgument(f"Unknown form field: {name}")
        self.touched.add(name)
        self._revalidate(name)

    @property
    def has_changes(self) -> bool:
        if self.record is None:
            return any(
                (v.strip() if isinstance(v, str) else v is not None)
                for v in self.form.model_dump().values()
            )
        return self.form != UserForm.from_record(self.record)

    @property
    def can_submit(self) -> bool:
        return not self.submitting and not any(k != GENERAL for k in self.errors)

    async def submit(self) -> MutationResult[UserRecord]:
        self.touched = set(FORM_FIELDS)
        self.submitting = True
        try:
            if self.record is not None:
                result = await self._mutations.update(self.record.id, self.form)
            else:
                result = await self._mutations.create(self.form)
        finally:
            self.submitting = False

        if result.ok:
            self.errors = {}
            if self.record is not None:
                self.record = result.value
        else:
            # 每次提交以本次结果为准，上一次的 general 错误不保留
            self.errors = dict(result.field_errors)
        return result

    def _revalidate(self, name: str) -> None:
        message = validate_field(name, getattr(self.form, name))
        if message:
            self.errors[name] = message
        else:
            self.errors.pop(name, None)


class _RedirectingPage:
    def __init__(self, navigate: Navigator):
        self._navigate = navigate
        self.pending_redirect: Optional[asyncio.Task] = None

    def _redirect_later(self, delay: float, path: str = LIST_PATH) -> None:
        async def _go() -> None:
            await asyncio.sleep(delay)
            logger.debug(f"Redirecting to {path}")
            self._navigate(path)

        def _log_failure(task: asyncio.Task) -> None:
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error(f"Redirect to {path} failed: {exc}")

        if self.pending_redirect is not None and not self.pending_redirect.done():
            self.pending_redirect.cancel()
        self.pending_redirect = asyncio.create_task(_go())
        self.pending_redirect.add_done_callback(_log_failure)


class NewUserPage(_RedirectingPage):
    """新建用户页。"""

    def __init__(self, api: UserApiClient, navigate: Navigator, success_delay: float = 1.5):
        super().__init__(navigate)
        self.session = UserFormSession(MutationController(api))
        self._success_delay = success_delay

    async def submit(self) -> MutationResult[UserRecord]:
        result = await self.session.submit()
        if result.ok:
            self._redirect_later(self._success_delay)
        return result

    def cancel(self) -> None:
        self._navigate(LIST_PATH)


class EditUserPage(_RedirectingPage):
    """编辑用户页：用户不存在视为终态，延迟跳回列表。"""

    def __init__(
        self,
        api: UserApiClient,
        navigate: Navigator,
        not_found_delay: float = 3.0,
        success_delay: float = 1.5,
    ):
        super().__init__(navigate)
        self._api = api
        self._mutations = MutationController(api)
        self._not_found_delay = not_found_delay
        self._success_delay = success_delay
        self.loading = False
        self.error: Optional[ConsoleError] = None
        self.session: Optional[UserFormSession] = None

    async def load(self, user_id: Any) -> bool:
        self.loading = True
        self.error = None
        try:
            result = await self._api.get_user(user_id)
        finally:
            self.loading = False

        if result.ok:
            self.session = UserFormSession(self._mutations, result.value)
            return True

        self.error = result.error
        if isinstance(result.error, NotFoundError):
            self._redirect_later(self._not_found_delay)
        return False

    async def submit(self) -> MutationResult[UserRecord]:
        if self.session is None:
            raise InvalidArgument("User is not loaded")
        result = await self.session.submit()
        if result.ok:
            self._redirect_later(self._success_delay)
        return result

    def cancel(self) -> None:
        self._navigate(LIST_PATH)
