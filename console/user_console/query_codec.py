"""
URL 查询参数编解码模块 (Query String Codec)

在 {filters, pagination} 列表状态与 URL 查询字符串之间双向转换。
本模块不做任何导航，调用方负责把编码结果写回地址栏（见 query_store）。

- decode: 每个参数独立解析，缺失或非法值回退到默认值，日期格式错误视为未设置
- encode: 只输出非空字段（文本原样保留），日期输出为 YYYY-MM-DD，page 始终输出；从不抛异常
"""
from typing import Any, Dict, List, Optional, Tuple

import httpx

from user_console.formatting import format_date_for_api, parse_date
from user_console.schemas import (
    ALLOWED_LIMITS,
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    SORT_COLUMNS,
    SORT_ORDERS,
    FilterSet,
    PaginationSpec,
    QueryState,
)

# 线上参数名与 FilterSet 字段名的对应关系（编码顺序即此顺序）
FILTER_PARAMS: Tuple[Tuple[str, str], ...] = (
    ("search", "search"),
    ("name", "name"),
    ("email", "email"),
    ("country", "country"),
    ("fromDate", "from_date"),
    ("toDate", "to_date"),
)
DATE_PARAMS = ("fromDate", "toDate")


def _parse_positive_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= 1 else None


def decode(query_string: Optional[str]) -> QueryState:
    """解析查询字符串为列表状态，支持带或不带前导 '?'。"""
    qs = (query_string or "").lstrip("?")
    params = httpx.QueryParams(qs)

    filter_values: Dict[str, Any] = {}
    for param, attr in FILTER_PARAMS:
        raw = params.get(param)
        if param in DATE_PARAMS:
            filter_values[attr] = parse_date(raw)
        else:
            filter_values[attr] = raw or ""

    page = _parse_positive_int(params.get("page")) or DEFAULT_PAGE
    limit = _parse_positive_int(params.get("limit"))
    if limit not in ALLOWED_LIMITS:
        limit = DEFAULT_LIMIT
    sort_by = params.get("sortBy")
    if sort_by not in SORT_COLUMNS:
        sort_by = DEFAULT_SORT_BY
    sort_order = params.get("sortOrder")
    if sort_order not in SORT_ORDERS:
        sort_order = DEFAULT_SORT_ORDER

    return QueryState(
        filters=FilterSet(**filter_values),
        pagination=PaginationSpec(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order),
    )


def _text(value: Any) -> Optional[str]:
    # 原样输出，只丢弃空串，保证 decode(encode(s)) == s
    if not isinstance(value, str):
        return None
    return value or None


def query_params(filters: Optional[FilterSet], pagination: Optional[PaginationSpec]) -> List[Tuple[str, str]]:
    """
    构建查询参数列表，API 请求和 URL 编码共用。

    只包含有值的字段；page 始终包含，缺失时取默认值。
    """
    pairs: List[Tuple[str, str]] = []
    if filters is not None:
        for param, attr in FILTER_PARAMS:
            value = getattr(filters, attr, None)
            if param in DATE_PARAMS:
                encoded = format_date_for_api(value)
            else:
                encoded = _text(value)
            if encoded:
                pairs.append((param, encoded))

    page = getattr(pagination, "page", None)
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        page = DEFAULT_PAGE
    pairs.append(("page", str(page)))

    limit = getattr(pagination, "limit", None)
    if isinstance(limit, int) and not isinstance(limit, bool) and limit >= 1:
        pairs.append(("limit", str(limit)))
    for param, attr in (("sortBy", "sort_by"), ("sortOrder", "sort_order")):
        value = _text(getattr(pagination, attr, None))
        if value:
            pairs.append((param, value))
    return pairs


def encode(filters: Optional[FilterSet], pagination: Optional[PaginationSpec]) -> str:
    """把列表状态编码为查询字符串（不带 '?'）。"""
    return str(httpx.QueryParams(query_params(filters, pagination)))


def encode_state(state: QueryState) -> str:
    return encode(state.filters, state.pagination)
