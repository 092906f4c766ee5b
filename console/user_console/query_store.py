"""
URL 状态存储 (URL Query Store)

URL 查询字符串是筛选、排序、分页状态的唯一来源。控制器只依赖 read()/write() 接口，
不直接依赖任何具体的导航实现，测试和 CLI 使用内存实现即可。
"""
import logging
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class QueryStore(Protocol):
    def read(self) -> str: ...

    def write(self, query_string: str) -> None: ...


class InMemoryQueryStore:
    """内存版 URL 存储，保留写入历史以支持后退。"""

    def __init__(self, initial: str = ""):
        self._history: List[str] = [initial.lstrip("?")]
        self._listeners: List[Listener] = []

    def read(self) -> str:
        return self._history[-1]

    def write(self, query_string: str) -> None:
        query_string = query_string.lstrip("?")
        self._history.append(query_string)
        logger.debug(f"Query updated: ?{query_string}")
        self._notify(query_string)

    def back(self) -> str:
        """回到上一条历史记录（首条记录时不变）。"""
        if len(self._history) > 1:
            self._history.pop()
            self._notify(self._history[-1])
        return self._history[-1]

    @property
    def history(self) -> List[str]:
        return list(self._history)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, query_string: str) -> None:
        for listener in list(self._listeners):
            listener(query_string)
