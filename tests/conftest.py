import sys
from collections import deque
from pathlib import Path
from unittest.mock import MagicMock

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from lineclient.core.handler import LineHandler
from lineclient.core.tcp_client import TcpLineClient


class FakeSocket:
    """模拟非阻塞socket，recv按队列返回数据，send可限制每次接受的字节数"""

    def __init__(self, so_error: int = 0, send_limit=None):
        self.so_error = so_error
        self.send_limit = send_limit
        self.incoming: deque = deque()
        self.sent = bytearray()
        self.send_calls = 0
        self.closed = False

    def recv(self, size: int) -> bytes:
        if not self.incoming:
            raise BlockingIOError()
        item = self.incoming.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def send(self, data: bytes) -> int:
        self.send_calls += 1
        if self.send_limit is not None:
            data = data[: self.send_limit]
        self.sent += data
        return len(data)

    def getsockopt(self, level: int, option: int) -> int:
        return self.so_error

    def close(self) -> None:
        self.closed = True


class RecordingHandler(LineHandler):
    """记录所有回调的处理器"""

    def __init__(self):
        super().__init__()
        self.events = []
        self.lines = []
        self.ticks = []

    def on_connected(self, time: float) -> None:
        self.events.append(("connected", time))

    def on_disconnected(self, time: float) -> None:
        self.events.append(("disconnected", time))

    def on_line(self, time: float, line: str) -> None:
        self.lines.append(line)

    def on_tick(self, time: float) -> None:
        self.ticks.append(time)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def socket_factory():
    return FakeSocket


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def client(handler, fake_socket):
    """使用模拟socket的客户端，重连间隔为0"""
    client = TcpLineClient(handler=handler, connect_timeout=5.0, reconnect_interval=0.0)
    client._open_socket = MagicMock(return_value=fake_socket)
    client.add_host("127.0.0.1", 51000)
    return client


@pytest.fixture
def connected_client(client):
    """已完成连接的客户端（t=1.0时连接成功）"""
    client.step(0.0)
    client.step(1.0, writable=True)
    return client
