"""可观测性模块"""

from swapsearch.observability.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
