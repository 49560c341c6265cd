"""管理命令

列出逻辑索引的版本、为某个索引构建新版本、切换别名、删除版本。
输出写入给定的文本流，便于在命令行和测试中复用。
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from typing import Any, TextIO

from swapsearch.search.collection import Collection
from swapsearch.search.index import EPOCH, Index

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
LIST_ROW_FORMAT = "{prefix:>4} {version:<20} {created_at:<20} {documents:<20}\n"
LIST_HEADER = LIST_ROW_FORMAT.format(
    prefix="", version="Version", created_at="Created At", documents="Documents"
)


def _created_at(collection: Collection | None) -> str:
    if collection is None or collection.created_at is None:
        return "N/A"
    return collection.created_at.strftime(TIME_FORMAT)


def list_indexes(indexes: Iterable[Index], output: TextIO = sys.stdout) -> None:
    """列出每个逻辑索引的版本（新版本在前，``->`` 标记别名当前指向的版本）"""
    for index in indexes:
        collections = sorted(index.collections(), key=lambda c: c.created_at or EPOCH, reverse=True)
        current = index.collection
        current_name = current.name if current is not None else None

        output.write(f"==> {index.alias_name}\n")
        output.write(LIST_HEADER)
        for collection in collections:
            output.write(LIST_ROW_FORMAT.format(
                prefix="->" if collection.name == current_name else "",
                version=collection.version if collection.version is not None else "-",
                created_at=_created_at(collection),
                documents=collection.num_documents,
            ))
        output.write("\n")


def index_records(
    index: Index,
    ids: Iterable[Any],
    output: TextIO = sys.stdout,
    batch_size: int | None = None,
) -> list[dict[str, Any]]:
    """创建新版本并导入记录（不切换别名），失败行按 JSON 逐行输出"""
    collection = index.create()
    output.write(f"==> Indexing into {index.alias_name} (Version {collection.version})\n")

    failures = index.index_many(ids, collection=collection, batch_size=batch_size)
    for failure in failures:
        output.write(json.dumps(failure, ensure_ascii=False) + "\n")
    return failures


def update_alias(index: Index, version: int | str, output: TextIO = sys.stdout) -> bool:
    """把别名切换到指定版本

    Returns:
        是否切换成功（版本不存在时返回 False）
    """
    new_collection = index.collection_for(version)
    if new_collection is None:
        output.write(f"--> No such version {version} for {index.alias_name}\n")
        return False

    old_collection = index.collection
    output.write(f"==> Alias for {index.alias_name}\n")
    old_version = old_collection.version if old_collection is not None else "None"
    output.write(f"Old: {old_version} ({_created_at(old_collection)})\n")

    index.update_alias(new_collection)
    output.write(f"New: {new_collection.version} ({_created_at(new_collection)})\n")
    return True


def drop_version(
    index: Index,
    version: int | str,
    output: TextIO = sys.stdout,
    force: bool = False,
) -> None:
    """删除一个版本"""
    collection = index.drop(version, force=force)
    output.write(f"==> Dropped {collection.name}\n")
