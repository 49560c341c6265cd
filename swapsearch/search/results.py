"""搜索结果

对 Typesense 原始搜索响应的只读封装，包含分页计算。
"""

from __future__ import annotations

import math
from typing import Any


class Hit:
    """单条命中

    原始结构::

        {
            "highlights": [{"field": "company_name", "snippet": "<mark>Stark</mark> Industries"}],
            "document": {"id": "124", "company_name": "Stark Industries"},
            "text_match": 130916
        }
    """

    def __init__(self, hit: dict[str, Any]) -> None:
        self._hit = hit

    @property
    def document(self) -> dict[str, Any]:
        return self._hit.get("document", {})

    @property
    def highlights(self) -> list[dict[str, Any]]:
        return self._hit.get("highlights", [])

    @property
    def score(self) -> int | None:
        """文本匹配分数（越大越相关，跨查询不可比较）"""
        return self._hit.get("text_match")

    def __repr__(self) -> str:
        return f"Hit(id={self.document.get('id')!r}, score={self.score!r})"


class GroupedHit:
    """分组命中（使用 group_by 时返回）"""

    def __init__(self, group: dict[str, Any]) -> None:
        self._group = group

    @property
    def group_key(self) -> list[Any]:
        return self._group.get("group_key", [])

    @property
    def hits(self) -> list[Hit]:
        return [Hit(hit) for hit in self._group.get("hits", [])]

    @property
    def count(self) -> int | None:
        """组内命中数"""
        return self._group.get("found")


class Facet:
    """分面计数中的一项"""

    def __init__(self, key: str, facet: dict[str, Any]) -> None:
        self.key = key
        self._facet = facet

    @property
    def value(self) -> Any:
        return self._facet.get("value")

    @property
    def count(self) -> int | None:
        return self._facet.get("count")

    @property
    def highlighted(self) -> str | None:
        return self._facet.get("highlighted")

    def __repr__(self) -> str:
        return f"Facet(key={self.key!r}, value={self.value!r}, count={self.count!r})"


class Results:
    """搜索响应

    per_page 从响应回显的 request_params 读取，而不是从查询构建器推断。
    """

    def __init__(self, results: dict[str, Any]) -> None:
        self._results = results

    @property
    def raw(self) -> dict[str, Any]:
        return self._results

    @property
    def hits(self) -> list[Hit]:
        return [Hit(hit) for hit in self._results.get("hits", [])]

    @property
    def grouped_hits(self) -> list[GroupedHit]:
        return [GroupedHit(group) for group in self._results.get("grouped_hits", [])]

    @property
    def facets(self) -> dict[str, list[Facet]]:
        """{字段名: Facet 列表}"""
        return {
            facet_count["field_name"]: [
                Facet(facet_count["field_name"], count) for count in facet_count.get("counts", [])
            ]
            for facet_count in self._results.get("facet_counts", [])
        }

    @property
    def facet_stats(self) -> dict[str, dict[str, Any]]:
        return {
            facet_count["field_name"]: facet_count["stats"]
            for facet_count in self._results.get("facet_counts", [])
            if facet_count.get("stats")
        }

    @property
    def count(self) -> int:
        """匹配总数"""
        return self._results.get("found", 0)

    @property
    def out_of(self) -> int | None:
        """被搜索的文档总数"""
        return self._results.get("out_of")

    @property
    def current_page(self) -> int | None:
        return self._results.get("page")

    @property
    def per_page(self) -> int | None:
        request_params = self._results.get("request_params") or {}
        return request_params.get("per_page", self._results.get("per_page"))

    @property
    def search_time_ms(self) -> int | None:
        return self._results.get("search_time_ms")

    @property
    def total_pages(self) -> int:
        if not self.per_page:
            return 0
        return math.ceil(self.count / self.per_page)

    @property
    def is_first_page(self) -> bool:
        return self.current_page == 1

    @property
    def is_last_page(self) -> bool:
        # 没有结果时 total_pages 为 0，第一页即最后一页
        return self.current_page is not None and self.current_page >= self.total_pages

    @property
    def prev_page(self) -> int | None:
        if self.current_page is None or self.is_first_page:
            return None
        return self.current_page - 1

    @property
    def next_page(self) -> int | None:
        if self.current_page is None or self.is_last_page:
            return None
        return self.current_page + 1

    def __len__(self) -> int:
        return len(self._results.get("hits", []))

    def __iter__(self):
        return iter(self.hits)
