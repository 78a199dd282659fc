"""
lineclient
自动重连的TCP行协议客户端引擎
"""

from lineclient.core.handler import LineHandler
from lineclient.core.line_buffer import LineBuffer
from lineclient.core.tcp_client import TICK_INTERVAL, TcpLineClient
from lineclient.models.object import ConnectionState, HostTarget

__all__ = [
    "TcpLineClient",
    "LineHandler",
    "LineBuffer",
    "ConnectionState",
    "HostTarget",
    "TICK_INTERVAL",
]

__version__ = "0.1.0"
