"""搜索模块

提供 Typesense 集合版本管理、零停机重建和查询构建功能。

模块结构:
- client: Typesense 客户端访问与异常翻译
- naming: 集合命名编解码
- schema: 字段与 Schema 定义
- collection: 具体集合视图与文档操作
- index: 逻辑索引与重建流程
- query: 查询构建器与分面编译
- results: 搜索结果封装
- callbacks: 记录变更回调
"""

from swapsearch.search.callbacks import IndexCallbacks
from swapsearch.search.client import (
    client_context,
    create_client,
    get_client,
    list_aliases,
    list_collections,
    reset_client,
    set_client,
    typesense_errors,
)
from swapsearch.search.collection import Collection
from swapsearch.search.index import (
    DocumentProducer,
    FunctionDocumentProducer,
    IdDocumentProducer,
    Index,
    ReindexResult,
)
from swapsearch.search.naming import ParsedName, alias_name_for, compose_name, parse_name
from swapsearch.search.query import NumericRange, Search, SortDirection
from swapsearch.search.results import Facet, GroupedHit, Hit, Results
from swapsearch.search.schema import Field, Schema, SchemaBuilder

__all__ = [
    # 客户端
    "get_client",
    "set_client",
    "reset_client",
    "create_client",
    "client_context",
    "list_collections",
    "list_aliases",
    "typesense_errors",
    # 命名
    "ParsedName",
    "parse_name",
    "compose_name",
    "alias_name_for",
    # Schema
    "Field",
    "Schema",
    "SchemaBuilder",
    # 集合与索引
    "Collection",
    "Index",
    "ReindexResult",
    "DocumentProducer",
    "IdDocumentProducer",
    "FunctionDocumentProducer",
    "IndexCallbacks",
    # 查询
    "Search",
    "SortDirection",
    "NumericRange",
    "Results",
    "Hit",
    "GroupedHit",
    "Facet",
]
