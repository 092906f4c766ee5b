"""
用户列表控制器 (User List Controller)

管理分页、筛选、排序后的用户列表的获取生命周期：
    IDLE -> LOADING | REFRESHING -> LOADED | FAILED（任意状态可重新进入 LOADING）

URL 是列表状态的唯一来源：每次请求前从 QueryStore 解码状态，排序/翻页/改每页条数
都先同步写回 URL，再发起请求。

并发约束：只有最后发起的请求结果有效。每个请求分配递增序号，返回时序号不是最新的
响应直接丢弃，避免慢响应覆盖新数据。
"""
import logging
from enum import Enum
from typing import List, Optional

from user_console import query_codec
from user_console.api_client import UserApiClient
from user_console.errors import ConsoleError, InvalidArgument
from user_console.query_store import QueryStore
from user_console.schemas import (
    ALLOWED_LIMITS,
    SORT_COLUMNS,
    PaginationResult,
    PaginationSpec,
    QueryState,
    UserRecord,
)

logger = logging.getLogger(__name__)


class ListStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"  # 手动刷新已有数据
    LOADED = "loaded"
    FAILED = "failed"


class FetchTrigger(str, Enum):
    NAVIGATION = "navigation"  # 首次加载或 URL 变化
    REFRESH = "refresh"        # 手动刷新、删除后刷新


class ListController:
    def __init__(self, api: UserApiClient, store: QueryStore):
        self._api = api
        self._store = store
        self.status: ListStatus = ListStatus.IDLE
        self.records: List[UserRecord] = []
        self.page: Optional[PaginationResult] = None
        self.error: Optional[ConsoleError] = None
        self._seq = 0  # 最近一次发起的请求序号

    @property
    def query_state(self) -> QueryState:
        return query_codec.decode(self._store.read())

    @property
    def pagination(self) -> PaginationSpec:
        return self.query_state.pagination

    @property
    def is_busy(self) -> bool:
        return self.status in (ListStatus.LOADING, ListStatus.REFRESHING)

    async def fetch(self, trigger: FetchTrigger = FetchTrigger.NAVIGATION) -> bool:
        """
        获取当前 URL 状态对应的用户列表 (Fetch the list for the current URL state)

        Args:
            trigger: 触发来源，REFRESH 时进入 REFRESHING 状态以区分首次加载

        Returns:
            bool: 本次结果是否被采用；被更新的请求取代时返回 False
        """
        self._seq += 1
        seq = self._seq
        self.error = None
        self.status = ListStatus.REFRESHING if trigger == FetchTrigger.REFRESH else ListStatus.LOADING

        state = self.query_state
        result = await self._api.list_users(state.filters, state.pagination)

        if seq != self._seq:
            logger.debug(f"Discarding stale list response (seq={seq}, latest={self._seq})")
            return False

        if result.ok:
            self.records = list(result.value.records)
            self.page = result.value.page
            self.status = ListStatus.LOADED
            logger.info(f"Users fetched: {len(self.records)} of {self.page.total_items}")
        else:
            self.records = []
            self.page = None
            self.error = result.error
            self.status = ListStatus.FAILED
        return True

    async def refresh(self) -> bool:
        return await self.fetch(FetchTrigger.REFRESH)

    async def change_sort(self, column: str) -> None:
        """同列切换升降序；换列时按新列降序并回到第 1 页。"""
        if column not in SORT_COLUMNS:
            raise InvalidArgument(f"Unsupported sort column: {column}")
        current = self.pagination
        if column == current.sort_by:
            order = "ASC" if current.sort_order == "DESC" else "DESC"
            updated = current.model_copy(update={"sort_order": order})
        else:
            updated = current.model_copy(update={"sort_by": column, "sort_order": "DESC", "page": 1})
        await self._navigate(updated)

    async def change_page(self, page: int) -> bool:
        """翻页；页码越界时静默忽略并返回 False。"""
        if page < 1:
            return False
        if self.page is not None and page > self.page.total_pages:
            return False
        await self._navigate(self.pagination.model_copy(update={"page": page}))
        return True

    async def change_limit(self, limit: int) -> None:
        """修改每页条数，总是回到第 1 页。"""
        if limit not in ALLOWED_LIMITS:
            raise InvalidArgument(f"limit must be one of {ALLOWED_LIMITS}")
        await self._navigate(self.pagination.model_copy(update={"limit": limit, "page": 1}))

    async def next_page(self) -> bool:
        return await self.change_page(self.pagination.page + 1)

    async def previous_page(self) -> bool:
        return await self.change_page(self.pagination.page - 1)

    async def _navigate(self, pagination: PaginationSpec) -> None:
        # URL 必须在请求发起前写入
        state = self.query_state
        self._store.write(query_codec.encode(state.filters, pagination))
        await self.fetch()
