"""Typesense 客户端访问

提供全局客户端实例、上下文管理器，以及把 typesense / requests 异常
统一翻译为本项目异常类型的 ``typesense_errors``。

使用示例:
    ```python
    from swapsearch.search.client import get_client, typesense_errors

    client = get_client()

    with typesense_errors("collection_retrieve", collection="posts"):
        client.collections["posts"].retrieve()
    ```
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import requests
import typesense
from typesense import exceptions as ts_exceptions

from swapsearch.config.settings import Settings, get_settings
from swapsearch.exceptions import (
    InvalidArgumentError,
    NameConflictError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from swapsearch.observability.logging import get_logger

if TYPE_CHECKING:
    from swapsearch.search.collection import Collection

logger = get_logger(__name__)


# ============== 异常翻译 ==============


@contextmanager
def typesense_errors(
    operation: str,
    validation: bool = False,
    **context: Any,
) -> Iterator[None]:
    """把远端调用异常翻译为项目异常

    Args:
        operation: 操作名称（用于日志事件名）
        validation: 400/422 是否视为文档校验错误
        **context: 日志与异常上下文

    Raises:
        NotFoundError: 404
        NameConflictError: 409
        ValidationError: 400/422（仅 validation=True 时）
        TransportError: 其他网络或服务端错误
    """
    try:
        yield
    except ts_exceptions.ObjectNotFound as e:
        logger.debug(f"{operation}_not_found", error=str(e), **context)
        raise NotFoundError(str(e), context) from e
    except ts_exceptions.ObjectAlreadyExists as e:
        logger.error(f"{operation}_conflict", error=str(e), **context)
        raise NameConflictError(str(e), context) from e
    except (ts_exceptions.RequestMalformed, ts_exceptions.ObjectUnprocessable) as e:
        logger.error(f"{operation}_rejected", error=str(e), **context)
        if validation:
            raise ValidationError(str(e), context) from e
        raise TransportError(str(e), context) from e
    except (ts_exceptions.TypesenseClientError, requests.exceptions.RequestException) as e:
        logger.error(f"{operation}_failed", error=str(e), **context)
        raise TransportError(str(e), context) from e


# ============== 全局客户端实例 ==============

_client: typesense.Client | None = None


def create_client(settings: Settings | None = None) -> typesense.Client:
    """根据配置创建 typesense.Client

    Args:
        settings: 配置（None 则使用全局配置）

    Returns:
        typesense.Client 实例

    Raises:
        InvalidArgumentError: 未配置 API key
    """
    settings = settings or get_settings()
    if not settings.api_key:
        raise InvalidArgumentError("Typesense API key is not configured (set SWAPSEARCH_API_KEY)")

    options = settings.connection_options()
    logger.debug(
        "typesense_client_created",
        nodes=[f"{n['protocol']}://{n['host']}:{n['port']}" for n in options["nodes"]],
    )
    return typesense.Client(options)


def get_client() -> typesense.Client:
    """获取 Typesense 客户端实例（单例）"""
    global _client
    if _client is None:
        _client = create_client()
    return _client


def set_client(client: typesense.Client) -> None:
    """注入全局客户端（测试或多集群场景）"""
    global _client
    _client = client


def reset_client() -> None:
    """丢弃全局客户端，下次访问时按配置重建"""
    global _client
    _client = None


@contextmanager
def client_context(settings: Settings | None = None) -> Iterator[typesense.Client]:
    """创建一个独立于全局实例的客户端

    Args:
        settings: 配置

    Yields:
        typesense.Client 实例
    """
    yield create_client(settings)


# ============== 集合与别名列表 ==============


def list_collections(client: typesense.Client | None = None) -> list[Collection]:
    """获取远端所有集合

    Args:
        client: Typesense 客户端（None 则使用全局实例）

    Returns:
        Collection 列表
    """
    from swapsearch.search.collection import Collection

    client = client or get_client()
    with typesense_errors("collections_retrieve"):
        collections = client.collections.retrieve()

    return [Collection(data, client=client) for data in collections]


def list_aliases(client: typesense.Client | None = None) -> dict[str, str]:
    """获取远端所有别名

    Args:
        client: Typesense 客户端（None 则使用全局实例）

    Returns:
        {别名: 集合名}
    """
    client = client or get_client()
    with typesense_errors("aliases_retrieve"):
        response = client.aliases.retrieve()

    return {item["name"]: item["collection_name"] for item in response.get("aliases", [])}
