"""配置管理模块"""

from swapsearch.config.settings import (
    Node,
    Settings,
    detect_environment,
    get_settings,
    reload_settings,
)

__all__ = [
    "Node",
    "Settings",
    "detect_environment",
    "get_settings",
    "reload_settings",
]
