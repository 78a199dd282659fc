"""
配置文件加载器
支持从YAML文件加载配置，并提供默认值

配置文件结构：
- client: 连接引擎配置（主机列表、超时、分隔符）
- logging: 日志配置
- session: 控制台处理器配置（连接后发送、心跳）
"""

from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from lineclient.core.handler import LineHandler
from lineclient.core.tcp_client import DEFAULT_CONNECT_TIMEOUT, TICK_INTERVAL, TcpLineClient
from lineclient.models.object import HostTarget
from lineclient.utils.logger import get_logger

logger = get_logger(__name__)


# ==================== 配置类 ====================


class ClientConfig(BaseModel):
    """连接引擎配置"""

    hosts: List[HostTarget] = Field(default_factory=list, description="按顺序轮询的主机列表")
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    line_delimiter: str = "\n"
    debug_level: int = 0
    encoding: str = "utf-8"
    reconnect_interval: float = TICK_INTERVAL

    @field_validator("hosts", mode="before")
    @classmethod
    def parse_hosts(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, dict)):
            v = [v]
        return [HostTarget.parse(item) if isinstance(item, str) else item for item in v]

    @field_validator("connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("连接超时必须大于0")
        return v

    @field_validator("line_delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        if not v:
            raise ValueError("行分隔符不能为空")
        return v

    @field_validator("debug_level", "reconnect_interval")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("参数不能为负数")
        return v


class LogConfig(BaseModel):
    """日志配置"""

    log_dir: str = "./data/logs"
    log_level: str = "INFO"
    rotation: str = "00:00"
    retention: str = "30 days"
    compression: str = "zip"


class SessionConfig(BaseModel):
    """控制台会话配置"""

    on_connect_send: List[str] = Field(default_factory=list, description="连接建立后发送的行")
    keepalive_interval: float = 0.0  # 0表示不发送心跳
    keepalive_message: str = ""

    @field_validator("keepalive_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError("心跳间隔不能为负数")
        return v


class AppConfig(BaseModel):
    """全局配置"""

    app_name: str = "lineclient"
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LogConfig = Field(default_factory=LogConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    class Config:
        extra = "allow"  # 允许额外字段


# ==================== 配置加载器 ====================


class ConfigLoader:
    """配置加载器类"""

    def __init__(self, config_path: Union[str, Path] = "./config/config.yaml"):
        """
        初始化配置加载器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = Path(config_path)
        self.app_config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """加载配置文件，结果会被缓存"""
        if self.app_config:
            return self.app_config

        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        self.app_config = AppConfig(**config_data)
        logger.info(
            f"已加载配置: {self.config_path} (主机数: {len(self.app_config.client.hosts)})"
        )
        return self.app_config


def build_client(
    config: ClientConfig, handler: Optional[LineHandler] = None, name: str = "TcpLineClient"
) -> TcpLineClient:
    """
    根据配置创建连接引擎

    Args:
        config: 连接引擎配置
        handler: 协议处理器
        name: 客户端名称

    Returns:
        已添加主机的 TcpLineClient
    """
    client = TcpLineClient(
        handler=handler,
        connect_timeout=config.connect_timeout,
        line_delimiter=config.line_delimiter,
        debug_level=config.debug_level,
        encoding=config.encoding,
        reconnect_interval=config.reconnect_interval,
        name=name,
    )
    for target in config.hosts:
        client.add_host(target)
    return client
