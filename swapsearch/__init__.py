"""swapsearch

Typesense 客户端层：基于命名约定和别名的零停机重建索引，以及类型化查询构建器。
"""

from swapsearch.exceptions import (
    InvalidArgumentError,
    NameConflictError,
    NotFoundError,
    SwapSearchError,
    TransportError,
    ValidationError,
)
from swapsearch.search import (
    Collection,
    Field,
    Index,
    IndexCallbacks,
    Results,
    Schema,
    SchemaBuilder,
    Search,
    SortDirection,
)

__version__ = "0.1.0"

__all__ = [
    "Collection",
    "Field",
    "Index",
    "IndexCallbacks",
    "Results",
    "Schema",
    "SchemaBuilder",
    "Search",
    "SortDirection",
    "SwapSearchError",
    "NotFoundError",
    "NameConflictError",
    "ValidationError",
    "InvalidArgumentError",
    "TransportError",
]
