"""日志配置

使用 structlog 实现结构化日志。日志写入 stderr，stdout 留给管理命令的输出。
"""

import sys
from typing import TextIO

import structlog
from structlog.typing import FilteringBoundLogger, Processor


def _build_processors(is_production: bool, should_json: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if not is_production:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
    processors.append(structlog.processors.format_exc_info)

    if should_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def configure_logging(
    environment: str | None = "development",
    log_level: str = "INFO",
    log_format: str = "console",
    stream: TextIO | None = None,
) -> None:
    """配置 structlog

    Args:
        environment: 运行环境（production 下强制 JSON 输出，且不记录调用位置）
        log_level: 日志级别
        log_format: 输出格式 (console/json)
        stream: 输出流（默认 stderr）
    """
    is_production = environment == "production"

    structlog.configure(
        processors=_build_processors(is_production, log_format == "json" or is_production),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **kwargs) -> FilteringBoundLogger:
    """获取日志记录器

    Args:
        name: 日志记录器名称（通常使用 __name__），记录在 ``logger_name`` 字段
        **kwargs: 额外的上下文变量

    Returns:
        绑定了上下文的日志记录器

    Examples:
        ```python
        log = get_logger(__name__)
        log.info("collection_created", collection="posts@1700000000")
        ```
    """
    if name:
        kwargs["logger_name"] = name
    return structlog.get_logger(**kwargs)
