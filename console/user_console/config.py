"""
控制台配置加载模块。

定义所有配置数据类，并从 YAML 文件加载配置。
支持环境变量覆盖（USER_CONSOLE_API_URL）和时间间隔简写（如 '30s'、'1m'）。
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from user_console.schemas import ALLOWED_LIMITS, DEFAULT_LIMIT

API_URL_ENV = "USER_CONSOLE_API_URL"


@dataclass
class ApiConfig:
    """用户服务 API 连接配置。"""
    base_url: str = "http://localhost:3001"
    timeout: float = 30  # 请求超时（秒）


@dataclass
class UiConfig:
    """界面行为配置。"""
    default_limit: int = DEFAULT_LIMIT
    not_found_redirect_delay: float = 3.0  # 用户不存在时跳回列表的延迟（秒）
    success_redirect_delay: float = 1.5    # 保存成功后跳回列表的延迟（秒）


@dataclass
class ConsoleConfig:
    """控制台主配置，聚合所有子配置。"""
    api: ApiConfig = field(default_factory=ApiConfig)
    ui: UiConfig = field(default_factory=UiConfig)


def _parse_interval(val) -> float:
    """解析时间间隔，支持 '30s'、'1m'、'1.5' 等格式。"""
    if isinstance(val, (int, float)):
        return float(val)
    s = str(val).strip().lower()
    if s.endswith("ms"):
        return float(s[:-2]) / 1000
    if s.endswith("s"):
        return float(s[:-1])
    if s.endswith("m"):
        return float(s[:-1]) * 60
    return float(s)


def load_config(path: Optional[str] = None) -> ConsoleConfig:
    """从 YAML 文件加载控制台配置。

    Args:
        path: 配置文件路径；为 None 时只使用默认值和环境变量。

    Returns:
        解析后的 ConsoleConfig 实例。

    Raises:
        FileNotFoundError: 显式指定的配置文件不存在时抛出。
        ValueError: 配置值非法时抛出。
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(p) as f:
            data = yaml.safe_load(f) or {}

    cfg = ConsoleConfig()

    # 解析 API 配置，base_url 优先从环境变量读取
    api = data.get("api", {}) or {}
    cfg.api.base_url = os.environ.get(API_URL_ENV, api.get("base_url", cfg.api.base_url)).rstrip("/")
    cfg.api.timeout = _parse_interval(api.get("timeout", cfg.api.timeout))
    if cfg.api.timeout <= 0:
        raise ValueError(f"api.timeout must be positive, got {cfg.api.timeout}")

    # 解析界面配置
    ui = data.get("ui", {}) or {}
    cfg.ui.default_limit = int(ui.get("default_limit", cfg.ui.default_limit))
    if cfg.ui.default_limit not in ALLOWED_LIMITS:
        raise ValueError(f"ui.default_limit must be one of {ALLOWED_LIMITS}")
    cfg.ui.not_found_redirect_delay = _parse_interval(
        ui.get("not_found_redirect_delay", cfg.ui.not_found_redirect_delay)
    )
    cfg.ui.success_redirect_delay = _parse_interval(
        ui.get("success_redirect_delay", cfg.ui.success_redirect_delay)
    )

    return cfg
