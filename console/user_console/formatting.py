"""日期与文本格式化工具。"""
import re
from datetime import date, datetime
from typing import Optional, Union

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = Union[date, datetime, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """解析 YYYY-MM-DD 日期，格式错误返回 None 而不是抛异常。"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not _ISO_DATE_RE.match(s):
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def format_date_for_api(value: DateLike) -> Optional[str]:
    """将日期转换为 API 使用的 YYYY-MM-DD 字符串，无法识别时返回 None。"""
    d = parse_date(value)
    return d.isoformat() if d else None


def format_display_date(value: DateLike) -> str:
    """列表展示用日期，如 'Mar 5, 1990'。"""
    if value is None or value == "":
        return "N/A"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return "Invalid date"
    return f"{value:%b} {value.day}, {value.year}"


def truncate_text(text: Optional[str], max_length: int = 50) -> str:
    if not text:
        return "N/A"
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
