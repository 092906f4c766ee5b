"""
筛选状态管理 (Filter State)

持有当前的 FilterSet，派生"是否有生效筛选"等标记，并在每次变更时把状态写回 URL。
筛选条件变化会使当前页码失效，因此每次写回 URL 都会把 page 重置为 1（limit 和排序保留）。
文本筛选值写入前去掉首尾空白，状态与 URL 中的值始终一致。
"""
import logging
from typing import Any, Callable, List, Optional

from user_console import query_codec
from user_console.errors import InvalidArgument
from user_console.formatting import parse_date
from user_console.query_store import QueryStore
from user_console.schemas import DATE_FILTERS, TEXT_FILTERS, FilterSet

logger = logging.getLogger(__name__)

FilterListener = Callable[[FilterSet], None]

# 兼容线上参数名
_ALIASES = {"fromDate": "from_date", "toDate": "to_date"}


class FilterState:
    def __init__(self, store: QueryStore):
        self._store = store
        self._filters = FilterSet()
        self._listeners: List[FilterListener] = []

    @property
    def filters(self) -> FilterSet:
        return self._filters

    @property
    def has_active_filters(self) -> bool:
        return self._filters.has_active_filters

    @property
    def active_filter_count(self) -> int:
        return self._filters.active_filter_count

    @property
    def has_advanced_filters(self) -> bool:
        return self._filters.has_advanced_filters

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def hydrate(self) -> FilterSet:
        """从 URL 读取筛选条件，不写回 URL，也不通知监听者。"""
        self._filters = query_codec.decode(self._store.read()).filters
        return self._filters

    def set_filter(self, name: str, value: Any) -> FilterSet:
        """替换单个筛选字段。

        Raises:
            InvalidArgument: 字段名未知、日期无法解析，或日期范围颠倒（from_date > to_date）。
        """
        field_name = self._field(name)
        if field_name in DATE_FILTERS:
            new_value = self._date_value(field_name, value)
        else:
            new_value = "" if value is None else str(value).strip()

        updated = self._filters.model_copy(update={field_name: new_value})
        if updated.from_date and updated.to_date and updated.from_date > updated.to_date:
            raise InvalidArgument(
                f"fromDate ({updated.from_date.isoformat()}) must not be after toDate ({updated.to_date.isoformat()})"
            )
        return self._apply(updated)

    def clear_filter(self, name: str) -> FilterSet:
        field_name = self._field(name)
        return self.set_filter(field_name, None if field_name in DATE_FILTERS else "")

    def clear_all(self) -> FilterSet:
        """一次性清空全部筛选条件，只通知一次。"""
        return self._apply(FilterSet())

    # ── 内部实现 ──────────────────────────────────────────────────────

    @staticmethod
    def _field(name: str) -> str:
        field_name = _ALIASES.get(name, name)
        if field_name not in TEXT_FILTERS and field_name not in DATE_FILTERS:
            raise InvalidArgument(f"Unknown filter: {name}")
        return field_name

    @staticmethod
    def _date_value(field_name: str, value: Any) -> Optional[Any]:
        if value is None or value == "":
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise InvalidArgument(f"Invalid date for {field_name}: {value!r}, expected YYYY-MM-DD")
        return parsed

    def _apply(self, filters: FilterSet) -> FilterSet:
        # 先写 URL 再通知，监听者触发的请求读到的一定是新状态
        pagination = query_codec.decode(self._store.read()).pagination
        self._store.write(query_codec.encode(filters, pagination.model_copy(update={"page": 1})))
        self._filters = filters
        logger.debug(f"Filters changed: active={filters.active_fields()}")
        for listener in list(self._listeners):
            listener(filters)
        return filters
