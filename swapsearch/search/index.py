"""逻辑索引

Index 管理一个逻辑索引的全部版本集合，并通过别名实现零停机重建：

1. ``create()`` 按 ``index[:env]@version`` 创建新集合（不动别名）
2. ``index_many()`` 把文档批量导入该集合
3. ``update_alias()`` 原子地把别名指向新集合

旧集合在显式删除前一直可查询。

使用示例:
    ```python
    from swapsearch.search import Index, SchemaBuilder

    class PostDocuments:
        def produce_documents(self, ids):
            for post in Post.objects.filter(id__in=ids):
                yield {"id": str(post.id), "title": post.title}

    posts = Index(
        "posts",
        SchemaBuilder().add_field("title", type="string").build(),
        producer=PostDocuments(),
    )

    result = posts.reindex(Post.objects.values_list("id", flat=True).iterator())
    posts.search("hello", "title").load()
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import typesense

from swapsearch.config.settings import get_settings
from swapsearch.exceptions import InvalidArgumentError, NotFoundError
from swapsearch.observability.logging import get_logger
from swapsearch.search.client import get_client, list_collections, typesense_errors
from swapsearch.search.collection import DEFAULT_BATCH_SIZE, Collection
from swapsearch.search.naming import alias_name_for, compose_name, format_version
from swapsearch.search.query import Search
from swapsearch.search.schema import Schema

logger = get_logger(__name__)

EPOCH = datetime.fromtimestamp(0, tz=UTC)


@runtime_checkable
class DocumentProducer(Protocol):
    """记录到文档的转换能力

    对每个输入 id 产出零个或多个文档。
    """

    def produce_documents(self, ids: Iterable[Any]) -> Iterable[dict[str, Any]]: ...


class IdDocumentProducer:
    """默认转换：每个 id 产出一个 ``{"id": id}`` 文档"""

    def produce_documents(self, ids: Iterable[Any]) -> Iterable[dict[str, Any]]:
        for id in ids:
            yield {"id": str(id)}


class FunctionDocumentProducer:
    """把普通函数包装为 DocumentProducer"""

    def __init__(self, fn: Callable[[Iterable[Any]], Iterable[dict[str, Any]]]) -> None:
        self.fn = fn

    def produce_documents(self, ids: Iterable[Any]) -> Iterable[dict[str, Any]]:
        return self.fn(ids)


@dataclass
class ReindexResult:
    """重建结果

    Attributes:
        collection: 新集合（别名已指向它）
        failures: 导入失败的行
    """

    collection: Collection
    failures: list[dict[str, Any]] = field(default_factory=list)


class Index:
    """逻辑索引控制器"""

    def __init__(
        self,
        index_name: str,
        schema: Schema,
        producer: DocumentProducer | Callable[[Iterable[Any]], Iterable[dict[str, Any]]] | None = None,
        env: str | None = None,
        client: typesense.Client | None = None,
    ) -> None:
        """初始化逻辑索引

        Args:
            index_name: 逻辑索引名（不含环境和版本）
            schema: 集合 schema
            producer: 记录到文档的转换（None 时每个 id 产出 ``{"id": id}``）
            env: 环境标签（None 则使用配置中的 env）
            client: Typesense 客户端（None 则使用全局实例）
        """
        if not index_name or ":" in index_name or "@" in index_name:
            raise InvalidArgumentError(f"Invalid index name: {index_name!r}")

        if producer is None:
            producer = IdDocumentProducer()
        elif not isinstance(producer, DocumentProducer):
            producer = FunctionDocumentProducer(producer)

        self.index_name = index_name
        self.schema = schema
        self.producer = producer
        self.env = env if env is not None else get_settings().env
        self._client = client

    @property
    def client(self) -> typesense.Client:
        return self._client or get_client()

    @property
    def alias_name(self) -> str:
        """当前环境下的别名 ``index[:env]``"""
        return alias_name_for(self.index_name, self.env)

    def collection_name_for(self, version: int | str | datetime | None = None) -> str:
        """生成指定版本的集合名（None 表示当前时间）"""
        return compose_name(self.index_name, self.env, version)

    def __repr__(self) -> str:
        return f"Index(alias_name={self.alias_name!r})"

    # ============== 集合与别名 ==============

    @property
    def collection(self) -> Collection | None:
        """别名当前指向的集合（每次访问都重新解析，未绑定时为 None）"""
        try:
            return Collection.retrieve(self.alias_name, client=self.client)
        except NotFoundError:
            return None

    def collections(self) -> list[Collection]:
        """该逻辑索引的所有集合（按创建时间排序）"""
        collections = [
            collection
            for collection in list_collections(self.client)
            if collection.index_name == self.index_name
        ]
        return sorted(collections, key=lambda c: c.created_at or EPOCH)

    def collection_for(self, version: int | str) -> Collection | None:
        """查找指定版本的集合"""
        version = format_version(version)
        for collection in self.collections():
            if collection.version == version and collection.env == (self.env or None):
                return collection
        return None

    def create(self, version: int | str | datetime | None = None) -> Collection:
        """创建一个新版本集合（不修改别名）

        Args:
            version: 版本（None 表示当前时间）

        Returns:
            新创建的集合

        Raises:
            NameConflictError: 同版本集合已存在
        """
        name = self.collection_name_for(version)
        collection = Collection({**self.schema.to_wire(), "name": name}, client=self.client)
        return collection.create()

    def update_alias(self, collection: Collection | str) -> str:
        """原子地把别名指向指定集合

        Args:
            collection: 集合或集合名

        Returns:
            新的目标集合名
        """
        name = collection.name if isinstance(collection, Collection) else collection

        with typesense_errors("alias_update", alias=self.alias_name, collection=name):
            self.client.aliases.upsert(self.alias_name, {"collection_name": name})

        logger.info("alias_updated", alias=self.alias_name, collection=name)
        return name

    def drop(self, version: int | str, force: bool = False) -> Collection:
        """删除一个版本的集合

        Args:
            version: 版本
            force: 是否允许删除别名当前指向的集合

        Returns:
            被删除的集合

        Raises:
            NotFoundError: 版本不存在
            InvalidArgumentError: 集合仍被别名引用且未指定 force
        """
        collection = self.collection_for(version)
        if collection is None:
            raise NotFoundError(
                f"No version {version} for {self.alias_name}",
                {"alias": self.alias_name, "version": version},
            )

        current = self.collection
        if not force and current is not None and current.name == collection.name:
            raise InvalidArgumentError(
                f"{collection.name} is aliased by {self.alias_name}; pass force=True to drop it",
                {"alias": self.alias_name, "collection": collection.name},
            )

        collection.delete()
        return collection

    # ============== 文档 ==============

    def produce_documents(self, ids: Iterable[Any]) -> Iterable[dict[str, Any]]:
        return self.producer.produce_documents(ids)

    def _resolve(self, collection: Collection | None) -> Collection:
        if collection is not None:
            return collection
        current = self.collection
        if current is None:
            raise NotFoundError(f"Alias {self.alias_name} is not bound", {"alias": self.alias_name})
        return current

    def index_many(
        self,
        ids: Iterable[Any],
        collection: Collection | None = None,
        batch_size: int | None = None,
    ) -> list[dict[str, Any]]:
        """把 ids 对应的文档流式导入集合

        Args:
            ids: 记录 id 序列
            collection: 目标集合（None 则使用别名当前指向的集合）
            batch_size: 每批大小（None 则使用配置值）

        Returns:
            导入失败的行
        """
        if batch_size is None:
            batch_size = get_settings().import_batch_size or DEFAULT_BATCH_SIZE

        collection = self._resolve(collection)
        return collection.insert_many(self.produce_documents(ids), batch_size=batch_size)

    def index_one(self, id: Any, collection: Collection | None = None) -> list[dict[str, Any]]:
        """增量索引单条记录

        Returns:
            写入的文档（转换可能产出零个或多个）
        """
        collection = self._resolve(collection)
        return [collection.insert_one(document) for document in self.produce_documents([id])]

    def remove_one(self, id: Any, collection: Collection | None = None) -> dict[str, Any]:
        """删除单条记录对应的文档"""
        return self._resolve(collection).remove_one(id)

    # ============== 重建 ==============

    def reindex(
        self,
        ids: Iterable[Any],
        collection: Collection | None = None,
        batch_size: int | None = None,
    ) -> ReindexResult:
        """重建索引：创建（或使用指定的）集合，批量导入，然后切换别名

        导入过程中抛出异常时不会切换别名，新集合保留以便排查。

        Args:
            ids: 记录 id 序列
            collection: 目标集合（None 则创建新版本）
            batch_size: 每批大小

        Returns:
            ReindexResult
        """
        collection = collection if collection is not None else self.create()
        log = logger.bind(alias=self.alias_name, collection=collection.name)

        try:
            failures = self.index_many(ids, collection=collection, batch_size=batch_size)
        except Exception:
            log.error("reindex_aborted")
            raise

        self.update_alias(collection)
        log.info("reindex_completed", failed=len(failures))
        return ReindexResult(collection=collection, failures=failures)

    # ============== 搜索 ==============

    def search(self, query: str, query_by: Any) -> Search:
        """在别名当前指向的集合上创建查询构建器

        Raises:
            NotFoundError: 别名未绑定
        """
        return self._resolve(None).search(query, query_by)
