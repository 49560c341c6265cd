"""记录变更回调

供 ORM 生命周期钩子调用的薄适配层：创建/更新时索引单条记录，删除时移除。

使用示例:
    ```python
    callbacks = IndexCallbacks(posts_index, update_if=lambda post: post.published)

    # SQLAlchemy
    event.listen(Post, "after_insert", lambda m, c, post: callbacks.after_create_commit(post))
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from swapsearch.observability.logging import get_logger
from swapsearch.search.index import Index

logger = get_logger(__name__)


class IndexCallbacks:
    """把记录变更转发到 Index 的单文档操作"""

    def __init__(self, index: Index, update_if: Callable[[Any], bool] | None = None) -> None:
        """初始化回调

        Args:
            index: 目标逻辑索引
            update_if: 更新时的过滤条件（返回 False 则跳过）
        """
        self.index = index
        self.update_if = update_if

    def after_create_commit(self, record: Any) -> None:
        self.index.index_one(record.id)

    def after_update_commit(self, record: Any) -> None:
        if self.update_if is not None and not self.update_if(record):
            logger.debug("record_update_skipped", alias=self.index.alias_name, id=record.id)
            return
        self.index.index_one(record.id)

    def after_destroy_commit(self, record: Any) -> None:
        self.index.remove_one(record.id)
