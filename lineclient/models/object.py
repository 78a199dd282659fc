"""
数据模型
连接状态枚举与目标主机定义
"""

from enum import Enum

from pydantic import BaseModel, field_validator


class ConnectionState(str, Enum):
    """客户端连接状态"""

    DISCONNECTED = "disconnected"  # 未连接
    CONNECTING = "connecting"  # 连接中
    CONNECTED = "connected"  # 已连接


class HostTarget(BaseModel):
    """连接目标 (host, port)"""

    host: str
    port: int

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("主机名不能为空")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"端口超出范围: {v}")
        return v

    @classmethod
    def parse(cls, value: str) -> "HostTarget":
        """
        解析 "host:port" 格式的字符串

        支持 IPv6 方括号写法，如 "[::1]:51000"

        Args:
            value: 目标字符串

        Returns:
            HostTarget
        """
        text = value.strip()
        host, sep, port = text.rpartition(":")
        if not sep or not host:
            raise ValueError(f"无效的目标地址（需要 host:port）: {value!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            port_num = int(port)
        except ValueError:
            raise ValueError(f"无效的端口: {value!r}") from None
        return cls(host=host, port=port_num)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"
