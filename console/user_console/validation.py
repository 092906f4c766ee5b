"""
用户表单校验 (User Form Validation)

与服务端校验规则保持一致的客户端校验：每个字段一个校验函数，
validate_form 组合全部字段，返回 {字段名: 错误信息}，全部通过时返回空字典。
"""
import re
from datetime import date
from typing import Any, Callable, Dict, Optional

from user_console.formatting import parse_date
from user_console.schemas import FORM_FIELDS, UserForm

FieldErrors = Dict[str, str]

GENERAL = "general"

_LETTERS_RE = re.compile(r"^[a-zA-Z\s]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_MOBILE_RE = re.compile(r"^[+]?[\d\s\-\(\)]{10,15}$")

MAX_AGE_YEARS = 120


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def validate_name(value: Any) -> str:
    value = _text(value)
    if len(value.strip()) < 2:
        return "Name is required and must be at least 2 characters"
    if len(value) > 50:
        return "Name must be 50 characters or less"
    if not _LETTERS_RE.match(value):
        return "Name should only contain letters and spaces"
    return ""


def validate_email(value: Any) -> str:
    value = _text(value)
    if not value.strip():
        return "Email is required"
    if not _EMAIL_RE.match(value):
        return "Invalid email format"
    return ""


def validate_mobile_number(value: Any) -> str:
    value = _text(value)
    if len(value.strip()) < 10:
        return "Mobile number is required and must be at least 10 characters"
    if not _MOBILE_RE.match(value):
        return "Invalid mobile number format"
    return ""


def validate_country(value: Any) -> str:
    value = _text(value)
    if len(value.strip()) < 2:
        return "Country is required and must be at least 2 characters"
    if len(value) > 20:
        return "Country must be 20 characters or less"
    if not _LETTERS_RE.match(value):
        return "Country should only contain letters and spaces"
    return ""


def validate_about_you(value: Any) -> str:
    value = _text(value)
    if len(value.strip()) < 10:
        return "About You is required and must be at least 10 characters"
    if len(value) > 250:
        return "About You must be 250 characters or less"
    return ""


def validate_birthday(value: Any, today: Optional[date] = None) -> str:
    birthday = parse_date(value)
    if birthday is None:
        return "Birthday is required"
    today = today or date.today()
    if birthday > today:
        return "Birthday cannot be in the future"
    if today.year - birthday.year > MAX_AGE_YEARS:
        return "Invalid age"
    return ""


VALIDATORS: Dict[str, Callable[[Any], str]] = {
    "name": validate_name,
    "email": validate_email,
    "mobile_number": validate_mobile_number,
    "country": validate_country,
    "birthday": validate_birthday,
    "about_you": validate_about_you,
}


def validate_field(name: str, value: Any) -> str:
    """校验单个字段，返回错误信息；未知字段视为通过。"""
    validator = VALIDATORS.get(name)
    return validator(value) if validator else ""


def validate_form(form: UserForm) -> FieldErrors:
    """校验全部字段，返回所有失败字段的错误信息。"""
    errors: FieldErrors = {}
    for name in FORM_FIELDS:
        message = validate_field(name, getattr(form, name))
        if message:
            errors[name] = message
    return errors
