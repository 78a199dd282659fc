"""
协议处理器基类
定义连接引擎回调的接口
"""
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from lineclient.core.tcp_client import TcpLineClient


class LineHandler:
    """
    协议处理器基类

    由 TcpLineClient 在其循环线程中同步调用。
    子类只需重写关心的回调，默认实现均为空操作。
    回调不应阻塞，否则整个引擎（收发、重连、tick）都会停顿。
    """

    def __init__(self):
        self.client: Optional["TcpLineClient"] = None

    def bind(self, client: "TcpLineClient") -> None:
        """绑定所属的连接引擎，供回调中调用 send_data"""
        self.client = client

    # ==================== 事件回调 ====================

    def on_connected(self, time: float) -> None:
        """连接建立回调（缓冲区已重置）"""
        pass

    def on_disconnected(self, time: float) -> None:
        """连接断开回调（socket已关闭）"""
        pass

    def on_line(self, time: float, line: str) -> None:
        """收到完整一行的回调"""
        pass

    def on_tick(self, time: float) -> None:
        """定时回调，每个tick周期调用一次，与连接状态无关"""
        pass
