"""集合 Schema

Field 描述单个字段，Schema 描述整个集合的文档结构。Schema 不可变，
通过 SchemaBuilder 构建；派生索引使用 ``extend()`` 复制父 schema 后追加字段。

使用示例:
    ```python
    from swapsearch.search.schema import SchemaBuilder

    base = (SchemaBuilder()
        .add_field("title", type="string")
        .add_field("user", type="string", facet=True)
        .set_default_sorting_field("created_at")
        .build())

    extended = base.extend().add_field("tags", type="string[]").build()
    ```
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Self

FIELD_FLAGS = ("facet", "index", "optional", "sort", "infix")


@dataclass(frozen=True)
class Field:
    """字段定义

    Attributes:
        name: 字段名（正则字段使用正则源文本）
        type: 字段类型
        locale: 分词语言
        facet: 是否可分面
        index: 是否索引
        optional: 是否可缺省
        sort: 是否可排序
        infix: 是否支持中缀搜索
        extra: 其余远端字段属性
    """

    name: str
    type: str = "auto"
    locale: str | None = None
    facet: bool | None = None
    index: bool | None = None
    optional: bool | None = None
    sort: bool | None = None
    infix: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        name = self.name
        if isinstance(name, re.Pattern):
            name = name.pattern
        object.__setattr__(self, "name", str(name))
        if not self.locale:
            object.__setattr__(self, "locale", None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Field:
        """从远端字段定义构建"""
        data = dict(data)
        known = {key: data.pop(key) for key in ("name", "type", "locale", *FIELD_FLAGS) if key in data}
        return cls(**known, extra=data)

    def to_wire(self) -> dict[str, Any]:
        """序列化为创建集合请求中的字段定义（省略未设置的项）"""
        wire: dict[str, Any] = {**self.extra, "name": self.name, "type": self.type}
        if self.locale:
            wire["locale"] = self.locale
        for flag in FIELD_FLAGS:
            value = getattr(self, flag)
            if value is not None:
                wire[flag] = value
        return wire


@dataclass(frozen=True)
class Schema:
    """集合 Schema（不可变）"""

    fields: tuple[Field, ...] = ()
    token_separators: tuple[str, ...] | None = None
    symbols_to_index: tuple[str, ...] | None = None
    default_sorting_field: str | None = None
    enable_nested_fields: bool | None = None

    def extend(self) -> SchemaBuilder:
        """复制当前 schema 得到构建器，用于派生索引追加字段"""
        return SchemaBuilder(self)

    def copy(self) -> Schema:
        return copy.deepcopy(self)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_wire(self) -> dict[str, Any]:
        """序列化为创建集合请求体（不包含 name，省略未设置或为空的选项）"""
        wire: dict[str, Any] = {"fields": [f.to_wire() for f in self.fields]}
        if self.token_separators:
            wire["token_separators"] = list(self.token_separators)
        if self.symbols_to_index:
            wire["symbols_to_index"] = list(self.symbols_to_index)
        if self.default_sorting_field is not None:
            wire["default_sorting_field"] = self.default_sorting_field
        if self.enable_nested_fields is not None:
            wire["enable_nested_fields"] = self.enable_nested_fields
        return wire


class SchemaBuilder:
    """Schema 构建器

    提供流式 API 累积字段与集合选项。
    """

    def __init__(self, base: Schema | None = None) -> None:
        """初始化构建器

        Args:
            base: 作为起点的 schema（字段列表会被深拷贝）
        """
        base = base or Schema()
        self._fields: list[Field] = copy.deepcopy(list(base.fields))
        self._token_separators = base.token_separators
        self._symbols_to_index = base.symbols_to_index
        self._default_sorting_field = base.default_sorting_field
        self._enable_nested_fields = base.enable_nested_fields

    def add_field(
        self,
        name: str | re.Pattern[str] | Field,
        type: str = "auto",
        locale: str | None = None,
        facet: bool | None = None,
        index: bool | None = None,
        optional: bool | None = None,
        sort: bool | None = None,
        infix: bool | None = None,
        **extra: Any,
    ) -> Self:
        """添加字段

        Args:
            name: 字段名、正则或现成的 Field
            type: 字段类型
            locale: 分词语言
            facet: 是否可分面
            index: 是否索引
            optional: 是否可缺省
            sort: 是否可排序
            infix: 是否支持中缀搜索
            **extra: 其他字段属性（如 num_dim）

        Returns:
            self
        """
        if isinstance(name, Field):
            self._fields.append(name)
            return self

        self._fields.append(Field(
            name=name,
            type=type,
            locale=locale,
            facet=facet,
            index=index,
            optional=optional,
            sort=sort,
            infix=infix,
            extra=extra,
        ))
        return self

    def set_token_separators(self, separators: list[str] | tuple[str, ...]) -> Self:
        self._token_separators = tuple(separators)
        return self

    def set_symbols_to_index(self, symbols: list[str] | tuple[str, ...]) -> Self:
        self._symbols_to_index = tuple(symbols)
        return self

    def set_default_sorting_field(self, name: str) -> Self:
        self._default_sorting_field = str(name)
        return self

    def set_enable_nested_fields(self, value: bool = True) -> Self:
        self._enable_nested_fields = value
        return self

    def build(self) -> Schema:
        """构建不可变 Schema"""
        return Schema(
            fields=tuple(self._fields),
            token_separators=self._token_separators,
            symbols_to_index=self._symbols_to_index,
            default_sorting_field=self._default_sorting_field,
            enable_nested_fields=self._enable_nested_fields,
        )
