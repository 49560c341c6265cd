"""集合命名

集合名格式为 ``<index>[:<env>][@<version>]``，其中 version 是整数秒时间戳。

使用示例:
    ```python
    from swapsearch.search.naming import compose_name, parse_name

    name = compose_name("posts", "production", 1700000000)
    # "posts:production@1700000000"

    parsed = parse_name(name)
    parsed.index_name  # "posts"
    parsed.version_time  # datetime(2023, 11, 14, ...)
    ```
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from swapsearch.exceptions import InvalidArgumentError

NAME_PATTERN = re.compile(r"^(?P<name>.*?)(?::(?P<env>.*?))?(?:@(?P<version>\d+))?$")


@dataclass(frozen=True)
class ParsedName:
    """解析后的集合名

    Attributes:
        index_name: 逻辑索引名
        env: 环境标签
        version: 版本号（时间戳秒数）
    """

    index_name: str
    env: str | None = None
    version: int | None = None

    @property
    def alias_name(self) -> str:
        """该集合所属逻辑索引的别名"""
        return alias_name_for(self.index_name, self.env)

    @property
    def version_time(self) -> datetime | None:
        """版本对应的时间，无法解码时返回 None"""
        if self.version is None:
            return None
        try:
            return datetime.fromtimestamp(self.version, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None


def parse_name(name: str) -> ParsedName:
    """解析集合名

    语法匹配总是成功；``@`` 之后不是纯数字时整个字符串视为索引名。

    Args:
        name: 集合名

    Returns:
        ParsedName
    """
    match = NAME_PATTERN.match(name)
    if match is None:
        return ParsedName(index_name=name)

    version = match.group("version")
    return ParsedName(
        index_name=match.group("name"),
        env=match.group("env"),
        version=int(version) if version is not None else None,
    )


def alias_name_for(index_name: str, env: str | None = None) -> str:
    """生成逻辑索引的别名 ``index[:env]``"""
    if env:
        return f"{index_name}:{env}"
    return index_name


def format_version(version: int | str | datetime | None = None) -> int:
    """把版本规范化为整数秒时间戳

    Args:
        version: 整数、数字字符串或 datetime（None 表示当前时间）

    Returns:
        整数秒
    """
    if version is None:
        return int(time.time())
    if isinstance(version, datetime):
        return int(version.timestamp())
    if isinstance(version, bool):
        raise InvalidArgumentError(f"Invalid collection version: {version!r}")
    if isinstance(version, int):
        if version < 0:
            raise InvalidArgumentError(f"Invalid collection version: {version!r}")
        return version
    if isinstance(version, str) and version.isdigit():
        return int(version)
    raise InvalidArgumentError(f"Invalid collection version: {version!r}")


def compose_name(
    index_name: str,
    env: str | None = None,
    version: int | str | datetime | None = None,
) -> str:
    """生成集合名

    Args:
        index_name: 逻辑索引名（不能包含 ``:`` 或 ``@``）
        env: 环境标签（不能包含 ``@``）
        version: 版本（None 表示当前时间）

    Returns:
        集合名
    """
    if not index_name or ":" in index_name or "@" in index_name:
        raise InvalidArgumentError(f"Invalid index name: {index_name!r}")
    if env and "@" in env:
        raise InvalidArgumentError(f"Invalid environment: {env!r}")

    return f"{alias_name_for(index_name, env)}@{format_version(version)}"
