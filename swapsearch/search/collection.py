"""集合

Collection 是远端某个具体（带版本）集合的视图：提供元数据访问、
文档写入/删除，以及查询构建器工厂。远端拥有持久状态，``reload()`` 重新拉取。

使用示例:
    ```python
    from swapsearch.search.collection import Collection

    collection = Collection.retrieve("posts:production")  # 别名会解析到实际集合
    collection.insert_one({"id": "1", "title": "Hello"})

    failures = collection.insert_many(iter_documents(), batch_size=200)
    ```
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from itertools import islice
from typing import Any, Self

import typesense

from swapsearch.observability.logging import get_logger
from swapsearch.search.client import get_client, typesense_errors
from swapsearch.search.naming import parse_name
from swapsearch.search.query import Search
from swapsearch.search.schema import Field

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


class Collection:
    """Typesense 集合视图"""

    def __init__(
        self,
        data: dict[str, Any],
        client: typesense.Client | None = None,
    ) -> None:
        """初始化集合视图（不发起网络请求）

        Args:
            data: 集合元数据（至少包含 name）
            client: Typesense 客户端（None 则使用全局实例）
        """
        self._data = dict(data)
        self.client = client or get_client()

    @classmethod
    def retrieve(cls, name: str, client: typesense.Client | None = None) -> Collection:
        """按名称（或别名）获取集合

        Args:
            name: 集合名或别名
            client: Typesense 客户端

        Returns:
            Collection 实例

        Raises:
            NotFoundError: 集合不存在
        """
        client = client or get_client()
        with typesense_errors("collection_retrieve", collection=name):
            data = client.collections[name].retrieve()
        return cls(data, client=client)

    # ============== 元数据 ==============

    @property
    def name(self) -> str:
        return self._data["name"]

    @property
    def created_at(self) -> datetime | None:
        created_at = self._data.get("created_at")
        if created_at is None:
            return None
        return datetime.fromtimestamp(created_at, tz=UTC)

    @property
    def default_sorting_field(self) -> str | None:
        return self._data.get("default_sorting_field") or None

    @property
    def enable_nested_fields(self) -> bool:
        return bool(self._data.get("enable_nested_fields"))

    @property
    def fields(self) -> list[Field]:
        return [Field.from_dict(f) for f in self._data.get("fields", [])]

    @property
    def num_documents(self) -> int:
        return self._data.get("num_documents", 0)

    @property
    def symbols_to_index(self) -> list[str]:
        return self._data.get("symbols_to_index", [])

    @property
    def token_separators(self) -> list[str]:
        return self._data.get("token_separators", [])

    @property
    def index_name(self) -> str:
        return parse_name(self.name).index_name

    @property
    def env(self) -> str | None:
        return parse_name(self.name).env

    @property
    def version(self) -> int | None:
        return parse_name(self.name).version

    @property
    def documents(self):
        """底层 typesense 文档接口"""
        return self.client.collections[self.name].documents

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __repr__(self) -> str:
        return f"Collection(name={self.name!r}, num_documents={self.num_documents!r})"

    # ============== 生命周期 ==============

    def create(self) -> Self:
        """在远端创建自身

        Returns:
            self（元数据更新为服务端返回值）

        Raises:
            NameConflictError: 同名集合已存在
        """
        with typesense_errors("collection_create", collection=self.name):
            self._data = self.client.collections.create(self._data)

        logger.info("collection_created", collection=self.name)
        return self

    def reload(self) -> Self:
        """重新拉取元数据"""
        with typesense_errors("collection_retrieve", collection=self.name):
            self._data = self.client.collections[self.name].retrieve()
        return self

    def delete(self) -> None:
        """删除远端集合"""
        with typesense_errors("collection_delete", collection=self.name):
            self.client.collections[self.name].delete()

        logger.info("collection_deleted", collection=self.name)

    # ============== 文档操作 ==============

    def insert_one(self, document: dict[str, Any]) -> dict[str, Any]:
        """插入或更新单个文档

        Args:
            document: 文档内容（按 id 覆盖）

        Returns:
            服务端返回的文档

        Raises:
            ValidationError: 文档被远端 schema 拒绝
        """
        with typesense_errors(
            "document_upsert",
            validation=True,
            collection=self.name,
            id=document.get("id"),
        ):
            result = self.documents.upsert(document)

        logger.debug("document_upserted", collection=self.name, id=document.get("id"))
        return result

    def insert_many(
        self,
        documents: Iterable[dict[str, Any]],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> list[dict[str, Any]]:
        """批量插入或更新文档

        输入按需消费，按 batch_size 分批顺序导入。单行失败只收集不抛出；
        整批的传输错误直接抛出。

        Args:
            documents: 文档序列（可以是生成器）
            batch_size: 每批大小

        Returns:
            失败行列表（每项包含 success、error、document）
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")

        failures: list[dict[str, Any]] = []
        imported = 0
        iterator = iter(documents)

        while batch := list(islice(iterator, batch_size)):
            with typesense_errors("documents_import", collection=self.name, batch=len(batch)):
                rows = self.documents.import_(batch, {"action": "upsert"})

            batch_failures = [row for row in rows if not row.get("success")]
            failures.extend(batch_failures)
            imported += len(batch) - len(batch_failures)

        logger.info("documents_imported", collection=self.name, imported=imported, failed=len(failures))
        return failures

    def remove_one(self, id: str | int) -> dict[str, Any]:
        """按 id 删除文档

        Raises:
            NotFoundError: 文档不存在
        """
        with typesense_errors("document_delete", collection=self.name, id=id):
            result = self.documents[str(id)].delete()

        logger.debug("document_deleted", collection=self.name, id=id)
        return result

    def remove_many(self, filter_by: str) -> int:
        """按过滤表达式删除文档

        Args:
            filter_by: Typesense 过滤表达式

        Returns:
            删除的文档数
        """
        with typesense_errors("documents_delete", collection=self.name, filter_by=filter_by):
            response = self.documents.delete({"filter_by": filter_by})

        deleted = response.get("num_deleted", 0)
        logger.info("documents_deleted_by_filter", collection=self.name, count=deleted)
        return deleted

    # ============== 搜索 ==============

    def search(self, query: str, query_by: Any) -> Search:
        """创建绑定到该集合的查询构建器"""
        return Search(self, query=query, query_by=query_by)
