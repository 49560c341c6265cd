"""异常类型定义模块

定义所有与集合、别名和查询相关的异常类型。

使用示例:
```python
from swapsearch.exceptions import NotFoundError

try:
    collection = Collection.retrieve("posts")
except NotFoundError:
    ...
```
"""

from typing import Any


class SwapSearchError(Exception):
    """异常基类"""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """初始化异常

        Args:
            message: 错误消息
            context: 错误上下文（集合名、别名等）
        """
        super().__init__(message)
        self.context = context or {}


class NotFoundError(SwapSearchError):
    """引用的集合或别名不存在"""

    pass


class NameConflictError(SwapSearchError):
    """创建的集合名已存在"""

    pass


class ValidationError(SwapSearchError):
    """文档被远端 schema 拒绝"""

    pass


class InvalidArgumentError(SwapSearchError, ValueError):
    """参数格式错误（在发起网络请求前检测）"""

    pass


class TransportError(SwapSearchError):
    """网络或服务端错误（不做内部重试）"""

    pass


__all__ = [
    "SwapSearchError",
    "NotFoundError",
    "NameConflictError",
    "ValidationError",
    "InvalidArgumentError",
    "TransportError",
]
