"""
控制台数据模型 (Console Data Models)

定义筛选条件、分页参数、服务端分页结果、用户记录和用户表单的 Schema。
字段名使用 snake_case，线上格式 (URL / JSON) 使用 camelCase 别名。
"""
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from user_console.formatting import format_date_for_api

# 每页条数可选值
ALLOWED_LIMITS: Tuple[int, ...] = (10, 25, 50, 100)
# 可排序的列（线上名称）
SORT_COLUMNS: Tuple[str, ...] = ("name", "email", "birthday", "country", "createdAt")
SORT_ORDERS: Tuple[str, ...] = ("ASC", "DESC")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "DESC"

TEXT_FILTERS: Tuple[str, ...] = ("search", "name", "email", "country")
DATE_FILTERS: Tuple[str, ...] = ("from_date", "to_date")
# 高级筛选项：任一有值时展开高级筛选面板
ADVANCED_FILTERS: Tuple[str, ...] = ("name", "email", "country", "from_date", "to_date")

FORM_FIELDS: Tuple[str, ...] = ("name", "email", "mobile_number", "country", "birthday", "about_you")


class FilterSet(BaseModel):
    """用户列表筛选条件，空字符串或 None 表示该字段不过滤。"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    search: str = ""
    name: str = ""
    email: str = ""
    country: str = ""
    from_date: Optional[date] = Field(default=None, alias="fromDate")
    to_date: Optional[date] = Field(default=None, alias="toDate")

    def active_fields(self) -> List[str]:
        """返回有值的筛选字段名，文本字段去空白后判断。"""
        active = [f for f in TEXT_FILTERS if getattr(self, f).strip()]
        active += [f for f in DATE_FILTERS if getattr(self, f) is not None]
        return active

    @property
    def has_active_filters(self) -> bool:
        return bool(self.active_fields())

    @property
    def active_filter_count(self) -> int:
        return len(self.active_fields())

    @property
    def has_advanced_filters(self) -> bool:
        return any(f in ADVANCED_FILTERS for f in self.active_fields())


class PaginationSpec(BaseModel):
    """客户端请求的分页与排序参数。"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page: int = Field(default=DEFAULT_PAGE, ge=1)
    limit: int = DEFAULT_LIMIT
    sort_by: str = Field(default=DEFAULT_SORT_BY, alias="sortBy")
    sort_order: str = Field(default=DEFAULT_SORT_ORDER, alias="sortOrder")

    @field_validator("limit")
    @classmethod
    def _check_limit(cls, v: int) -> int:
        if v not in ALLOWED_LIMITS:
            raise ValueError(f"limit must be one of {ALLOWED_LIMITS}")
        return v

    @field_validator("sort_by")
    @classmethod
    def _check_sort_by(cls, v: str) -> str:
        if v not in SORT_COLUMNS:
            raise ValueError(f"sortBy must be one of {SORT_COLUMNS}")
        return v

    @field_validator("sort_order")
    @classmethod
    def _check_sort_order(cls, v: str) -> str:
        if v not in SORT_ORDERS:
            raise ValueError("sortOrder must be ASC or DESC")
        return v


class QueryState(BaseModel):
    """URL 中解析出的完整列表状态。"""
    model_config = ConfigDict(frozen=True)

    filters: FilterSet = Field(default_factory=FilterSet)
    pagination: PaginationSpec = Field(default_factory=PaginationSpec)


class PaginationResult(BaseModel):
    """服务端返回的分页元数据，客户端只读。"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    current_page: int = Field(default=1, alias="currentPage")
    total_pages: int = Field(default=1, alias="totalPages")
    total_items: int = Field(default=0, alias="totalItems")
    items_per_page: int = Field(default=DEFAULT_LIMIT, alias="itemsPerPage")
    has_next_page: bool = Field(default=False, alias="hasNextPage")
    has_prev_page: bool = Field(default=False, alias="hasPrevPage")
    next_page: Optional[int] = Field(default=None, alias="nextPage")
    prev_page: Optional[int] = Field(default=None, alias="prevPage")

    @property
    def start_item(self) -> int:
        if self.total_items == 0:
            return 0
        return (self.current_page - 1) * self.items_per_page + 1

    @property
    def end_item(self) -> int:
        return min(self.current_page * self.items_per_page, self.total_items)

    def page_numbers(self, delta: int = 2) -> List[Optional[int]]:
        """
        生成分页按钮序列 (Build the page-number window)

        当前页前后各显示 delta 页，首页和末页始终显示，中间省略的部分用 None 表示。

        Examples:
            current_page=6, total_pages=20 -> [1, None, 4, 5, 6, 7, 8, None, 20]
        """
        start = max(1, self.current_page - delta)
        end = min(self.total_pages, self.current_page + delta)
        pages: List[Optional[int]] = []
        if start > 1:
            pages.append(1)
            if start > 2:
                pages.append(None)
        pages.extend(range(start, end + 1))
        if end < self.total_pages:
            if end < self.total_pages - 1:
                pages.append(None)
            pages.append(self.total_pages)
        return pages


class UserRecord(BaseModel):
    """服务端用户记录，id 与时间戳由服务端分配。"""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    email: str
    mobile_number: str = Field(alias="mobileNumber")
    country: str
    about_you: str = Field(default="", alias="aboutYou")
    birthday: Optional[date] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class UserPage(BaseModel):
    """一页用户列表及其分页信息。"""
    records: List[UserRecord] = Field(default_factory=list)
    page: PaginationResult = Field(default_factory=PaginationResult)

    @classmethod
    def from_payload(cls, payload: dict) -> "UserPage":
        """解析列表接口 payload：{"users": [...], "pagination": {...}}。"""
        return cls(
            records=[UserRecord.model_validate(u) for u in payload.get("users") or []],
            page=PaginationResult.model_validate(payload.get("pagination") or {}),
        )


class UserForm(BaseModel):
    """用户表单状态，创建和编辑共用。"""

    name: str = ""
    email: str = ""
    mobile_number: str = ""
    country: str = ""
    birthday: Optional[date] = None
    about_you: str = ""

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserForm":
        return cls(
            name=record.name or "",
            email=record.email or "",
            mobile_number=record.mobile_number or "",
            country=record.country or "",
            birthday=record.birthday,
            about_you=record.about_you or "",
        )

    def to_payload(self) -> Dict[str, Optional[str]]:
        """转换为 API 请求体（camelCase，日期为 YYYY-MM-DD）。"""
        return {
            "name": self.name,
            "email": self.email,
            "mobileNumber": self.mobile_number,
            "country": self.country,
            "birthday": format_date_for_api(self.birthday),
            "aboutYou": self.about_you,
        }
