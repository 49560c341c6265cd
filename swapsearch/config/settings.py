"""配置管理

支持多源配置，优先级从高到低：
1. 显式传入的参数
2. 环境变量（SWAPSEARCH_*，包括 .env 文件）
3. YAML 配置文件（swapsearch.yaml）
4. 框架提供的默认值（如 APP_ENV / ENVIRONMENT）
5. 缺省（None）

环境变量命名规范：
- SWAPSEARCH_API_KEY
- SWAPSEARCH_ENV
- SWAPSEARCH_NODES（JSON 列表）或 SWAPSEARCH_URL（单节点）
"""

import os
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlsplit

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

load_dotenv()

DEFAULT_CONFIG_FILE = "swapsearch.yaml"


def detect_environment() -> str | None:
    """检测宿主框架提供的环境标签"""
    return os.getenv("APP_ENV") or os.getenv("ENVIRONMENT") or None


def config_file_path() -> Path:
    return Path(os.getenv("SWAPSEARCH_CONFIG_FILE", DEFAULT_CONFIG_FILE))


def _load_yaml_config() -> dict[str, Any]:
    """从 YAML 文件加载配置

    Returns:
        配置字典，文件不存在时返回空字典
    """
    path = config_file_path()
    if not path.exists():
        return {}

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


class YamlSettingsSource(PydanticBaseSettingsSource):
    """YAML 配置源（优先级低于环境变量）"""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        data = _load_yaml_config()
        return {key: value for key, value in data.items() if key in self.settings_cls.model_fields}


class Node(BaseModel):
    """Typesense 节点"""

    host: str = "localhost"
    port: int = 8108
    protocol: Literal["http", "https"] = "http"
    path: str = ""

    @classmethod
    def from_url(cls, url: str) -> "Node":
        parts = urlsplit(url)
        protocol = parts.scheme or "http"
        default_port = 443 if protocol == "https" else 8108
        return cls(
            host=parts.hostname or "localhost",
            port=parts.port or default_port,
            protocol=protocol,
            path=parts.path.rstrip("/"),
        )


class Settings(BaseSettings):
    """客户端配置"""

    nodes: list[Node] = [Node()]
    url: str | None = None
    api_key: str | None = None
    env: str | None = None

    connection_timeout_seconds: float = 5.0
    num_retries: int = 0
    import_batch_size: int = 100

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    model_config = SettingsConfigDict(
        env_prefix="swapsearch_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )

    def model_post_init(self, __context) -> None:
        """初始化后处理"""
        if self.env is None:
            self.env = detect_environment()

    @property
    def connection_nodes(self) -> list[Node]:
        """实际使用的节点列表（SWAPSEARCH_URL 优先）"""
        if self.url:
            return [Node.from_url(self.url)]
        return self.nodes

    def connection_options(self) -> dict[str, Any]:
        """构建 typesense.Client 的配置字典"""
        return {
            "nodes": [node.model_dump() for node in self.connection_nodes],
            "api_key": self.api_key or "",
            "connection_timeout_seconds": self.connection_timeout_seconds,
            "num_retries": self.num_retries,
        }


_settings: Settings | None = None


def get_settings() -> Settings:
    """获取配置实例（单例）

    Returns:
        Settings 实例
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(**overrides: Any) -> Settings:
    """重新加载配置

    Args:
        **overrides: 显式指定的配置项（优先级最高）

    Returns:
        新的 Settings 实例
    """
    global _settings
    _settings = Settings(**overrides)
    return _settings
