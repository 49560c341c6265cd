"""查询构建器

提供流式 API 构建 Typesense 搜索参数，并把分面子选项编译为
``facet_by`` 的迷你语言。

使用示例:
    ```python
    from swapsearch.search.query import Search

    # 简单查询
    results = collection.search("keyboard", "title").load()

    # 复杂查询
    results = (collection.search("keyboard", {"title": 2, "description": 1})
        .filter({"in_stock": True})
        .sort({"price": "asc"})
        .facet({
            "brand": None,
            "price": {"ranges": {"cheap": range(0, 50), "pricey": [50, 500]}},
            "category": {"sort": "desc", "return_parent": True},
        })
        .per(20)
        .page(2)
        .load())

    # 批量查询（一次请求）
    by_name = Search.multi({"posts": posts_search, "users": users_search})
    ```
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Self

import typesense

from swapsearch.exceptions import InvalidArgumentError
from swapsearch.observability.logging import get_logger
from swapsearch.search.client import get_client, typesense_errors
from swapsearch.search.results import Results

if TYPE_CHECKING:
    from swapsearch.search.collection import Collection

logger = get_logger(__name__)


class SortDirection(str, Enum):
    """排序方向"""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class NumericRange:
    """数值区间（用于 range 对象无法表达的浮点区间）

    Attributes:
        start: 下界
        stop: 上界
        inclusive: 上界是否包含（分面区间要求 False）
    """

    start: float
    stop: float
    inclusive: bool = False


def format_value(value: Any) -> str:
    """按 Typesense 语法渲染过滤值"""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ",".join(format_value(item) for item in value) + "]"
    return str(value)


def _field_list(fields: Any) -> list[str]:
    if isinstance(fields, (list, tuple)):
        return [format_value(f) for f in fields]
    return [format_value(fields)]


def _is_direction(value: Any) -> bool:
    return isinstance(value, SortDirection) or (
        isinstance(value, str) and value.lower() in ("asc", "desc")
    )


# ============== 分面编译 ==============


def compile_facet_sort(sort: Any) -> str | None:
    """编译分面 sort_by 子选项

    Args:
        sort: 方向（按字母序）、{字段: 方向} 单键映射，或原样透传的字符串

    Returns:
        sort_by 值
    """
    if sort is None:
        return None
    if _is_direction(sort):
        return f"_alpha:{format_value(sort).lower()}"
    if isinstance(sort, str):
        return sort
    if isinstance(sort, Mapping):
        if len(sort) != 1:
            raise InvalidArgumentError("Facet sort_by must have exactly one key")
        ((sort_key, direction),) = sort.items()
        return f"{sort_key}:{format_value(direction)}"
    raise InvalidArgumentError("Facet sort_by must be a mapping, a direction, or a string")


def compile_facet_range(label: str, value: Any) -> str:
    """编译单个分面区间为 ``label:[lo,hi]``

    输入上界必须是开区间，输出写成闭区间括号。
    """
    if isinstance(value, range):
        if value.step != 1:
            raise InvalidArgumentError(f"Facet range {label!r} must have a step of 1")
        lower, upper = value.start, value.stop
    elif isinstance(value, NumericRange):
        if value.inclusive:
            raise InvalidArgumentError(f"Facet range {label!r} must exclude its upper bound")
        lower, upper = value.start, value.stop
    elif isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise InvalidArgumentError(f"Facet range {label!r} must have two elements")
        lower, upper = value
    else:
        raise InvalidArgumentError(f"Facet range {label!r} must be a range or a two-element pair")

    return f"{label}:[{lower},{upper}]"


# ============== 查询构建 ==============


class Search:
    """Typesense 查询构建器

    累积过滤、排序、分面、字段投影和分页参数，``compile()`` 时合并为
    Typesense 的扁平字符串参数。
    """

    def __init__(
        self,
        collection: Collection,
        query: str,
        query_by: str | list[str] | tuple[str, ...] | Mapping[str, int],
    ) -> None:
        """初始化查询构建器

        Args:
            collection: 查询的集合（可以是别名视图）
            query: 查询字符串
            query_by: 查询字段；映射时值为权重
        """
        self._filter_by: list[str] = []
        self._sort_by: list[str] = []
        self._facet_by: list[str] = []
        self._facet_query: list[str] = []
        self._facet_return_parent: list[str] = []
        self._include_fields: list[str] = []
        self._exclude_fields: list[str] = []
        self._group_by: list[str] = []
        self._params: dict[str, Any] = {}

        self.collection = collection
        self.query = query

        self._query_by_weights: list[str] = []
        if isinstance(query_by, Mapping):
            self._query_by = [str(key) for key in query_by]
            self._query_by_weights = [str(weight) for weight in query_by.values()]
        else:
            self._query_by = _field_list(query_by)

    # ============== 分页与通用参数 ==============

    def per(self, count: int) -> Self:
        """设置每页结果数"""
        return self.set(per_page=count)

    def page(self, number: int) -> Self:
        """设置页码（从 1 开始）"""
        return self.set(page=number)

    def set(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> Self:
        """设置任意搜索参数（compile 时最后合并，可覆盖计算值）

        Args:
            values: 参数映射
            **kwargs: 参数

        Returns:
            self
        """
        self._params.update(values or {}, **kwargs)
        return self

    # ============== 过滤与排序 ==============

    def filter(self, expr: str | list[str] | Mapping[str, Any]) -> Self:
        """添加过滤条件（所有条件以 && 连接）

        Args:
            expr: 原始过滤字符串、字符串列表，或 {字段: 值} 映射

        Returns:
            self
        """
        if isinstance(expr, Mapping):
            self._filter_by.extend(f"{key}:{format_value(value)}" for key, value in expr.items())
        elif isinstance(expr, (list, tuple)):
            self._filter_by.extend(str(item) for item in expr)
        else:
            self._filter_by.append(str(expr))
        return self

    def sort(self, spec: str | Mapping[str, Any]) -> Self:
        """添加排序（先添加的优先级更高）

        Args:
            spec: 原始排序字符串，或 {字段: 方向} 映射

        Returns:
            self
        """
        if isinstance(spec, Mapping):
            self._sort_by.extend(f"{key}:{format_value(direction)}" for key, direction in spec.items())
        else:
            self._sort_by.append(str(spec))
        return self

    # ============== 分面 ==============

    def facet(self, spec: str | list[str] | tuple[str, ...] | Mapping[str, Any]) -> Self:
        """添加分面字段

        映射形式下每个值可以是:
        - 字符串: 分面查询，等价于 ``{"query": 值}``
        - None: 仅分面
        - 子选项映射:
            * ``sort``: 方向（按字母序）、``{字段: 方向}`` 单键映射或原始字符串
            * ``ranges``: ``{标签: range | NumericRange | [lo, hi]}``，区间上界必须为开区间
            * ``return_parent``: 返回嵌套字段的父对象
            * ``query``: 分面查询

        Args:
            spec: 字段、字段列表或分面配置映射

        Returns:
            self

        Raises:
            InvalidArgumentError: 子选项格式错误
        """
        if not isinstance(spec, Mapping):
            self._facet_by.extend(_field_list(spec))
            return self

        for key, value in spec.items():
            key = str(key)
            if isinstance(value, str):
                self._facet_by.append(key)
                if value:
                    self._facet_query.append(f"{key}:{value}")
            elif isinstance(value, Mapping):
                self._facet_by.append(self._compile_facet_options(key, value))
                if value.get("return_parent"):
                    self._facet_return_parent.append(key)
                if value.get("query"):
                    self._facet_query.append(f"{key}:{value['query']}")
            else:
                self._facet_by.append(key)
        return self

    @staticmethod
    def _compile_facet_options(key: str, options: Mapping[str, Any]) -> str:
        params: list[str] = []

        sort_by = compile_facet_sort(options.get("sort"))
        if sort_by:
            params.append(f"sort_by:{sort_by}")

        ranges = options.get("ranges")
        if isinstance(ranges, Mapping):
            params.extend(compile_facet_range(str(label), value) for label, value in ranges.items())
        elif ranges is not None:
            raise InvalidArgumentError("Facet ranges must be a mapping of label to range")

        if not params:
            return key
        return f"{key}({','.join(params)})"

    # ============== 字段投影与分组 ==============

    def include_fields(self, *fields: str) -> Self:
        self._include_fields.extend(str(f) for f in fields)
        return self

    def exclude_fields(self, *fields: str) -> Self:
        self._exclude_fields.extend(str(f) for f in fields)
        return self

    def group_by(self, *fields: str) -> Self:
        self._group_by.extend(str(f) for f in fields)
        return self

    # ============== 编译与执行 ==============

    def compile(self) -> dict[str, Any]:
        """编译为 Typesense 搜索参数

        空列表和值为 None 或空字符串的参数不会出现在结果中。

        Returns:
            搜索参数字典
        """
        params: dict[str, Any] = {
            "collection": self.collection.name,
            "q": self.query,
            "query_by": ",".join(self._query_by),
            "query_by_weights": ",".join(self._query_by_weights),
            "filter_by": " && ".join(self._filter_by),
            "sort_by": ",".join(self._sort_by),
            "facet_by": ",".join(self._facet_by),
            "facet_query": ",".join(self._facet_query),
            "facet_return_parent": ",".join(self._facet_return_parent),
            "include_fields": ",".join(self._include_fields),
            "exclude_fields": ",".join(self._exclude_fields),
            "group_by": ",".join(self._group_by),
        }
        params.update(self._params)

        return {key: value for key, value in params.items() if not _is_blank(value)}

    def load(self) -> Results:
        """执行查询

        Returns:
            Results 实例
        """
        params = self.compile()
        params.pop("collection", None)

        with typesense_errors("search", collection=self.collection.name):
            response = self.collection.documents.search(params)

        logger.debug(
            "search_executed",
            collection=self.collection.name,
            found=response.get("found"),
            search_time_ms=response.get("search_time_ms"),
        )
        return Results(response)

    @classmethod
    def multi(
        cls,
        *searches: Search | Mapping[str, Any] | list[Search | Mapping[str, Any]],
        client: typesense.Client | None = None,
    ) -> list[Results] | dict[Any, Results]:
        """一次请求执行多个查询

        两种形式:
        - ``multi(a, b)`` 或 ``multi([a, b])``: 返回与输入顺序一致的 Results 列表
        - ``multi({"a": a, "b": b})``: 返回键相同的 Results 映射

        每个查询可以是 Search 实例或已编译的参数字典。
        没有查询时不发请求，直接返回空列表或空映射。

        Args:
            *searches: 查询
            client: Typesense 客户端（None 则使用第一个查询所属集合的客户端）

        Returns:
            Results 列表或映射
        """
        keys: list[Any] | None = None
        if len(searches) == 1 and isinstance(searches[0], Mapping) and _is_named(searches[0]):
            keys = list(searches[0].keys())
            items = list(searches[0].values())
        else:
            items = []
            for search in searches:
                if isinstance(search, (list, tuple)):
                    items.extend(search)
                else:
                    items.append(search)

        if not items:
            return {} if keys is not None else []

        compiled = [item.compile() if isinstance(item, Search) else dict(item) for item in items]

        if client is None:
            owner = next((item for item in items if isinstance(item, Search)), None)
            client = owner.collection.client if owner is not None else get_client()

        with typesense_errors("multi_search", count=len(compiled)):
            response = client.multi_search.perform({"searches": compiled}, {})

        wrapped = [Results(result) for result in response.get("results", [])]
        logger.debug("multi_search_executed", count=len(wrapped))

        if keys is not None:
            return dict(zip(keys, wrapped, strict=True))
        return wrapped


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _is_named(searches: Mapping[Any, Any]) -> bool:
    # 已编译的单个参数字典也是 Mapping，但它的值不是查询
    return all(
        isinstance(value, (Search, Mapping)) for value in searches.values()
    )
