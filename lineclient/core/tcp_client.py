"""
TCP行协议客户端引擎

单线程、单socket的事件循环，包含：
- 多主机轮询故障切换
- 非阻塞连接与连接超时
- 读写多路复用
- 输入行缓冲与输出缓冲
- 固定周期的tick回调
"""

import errno
import selectors
import socket
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from lineclient.core.handler import LineHandler
from lineclient.core.line_buffer import LineBuffer
from lineclient.models.object import ConnectionState, HostTarget
from lineclient.utils.logger import get_logger

TICK_INTERVAL = 0.01  # tick周期（秒）
RECV_BUFFER_SIZE = 4096
DEFAULT_CONNECT_TIMEOUT = 10.0

_CONNECT_IN_PROGRESS = (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY)


class TcpLineClient:
    """
    TCP行协议客户端

    run_loop() 会持续尝试连接已配置的主机并保持连接，
    可在主线程中直接调用，也可通过 start() 在独立线程中运行。

    协议相关的逻辑由注入的 LineHandler 实现：
    - on_connected: 连接建立
    - on_disconnected: 连接断开（远端关闭、超时或主动停止）
    - on_line: 收到一行数据
    - on_tick: 每个tick周期调用

    所有回调都在循环线程中同步执行。
    """

    def __init__(
        self,
        handler: Optional[LineHandler] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        line_delimiter: str = "\n",
        debug_level: int = 0,
        encoding: str = "utf-8",
        reconnect_interval: float = TICK_INTERVAL,
        name: str = "TcpLineClient",
        clock: Callable[[], float] = time.time,
    ):
        """
        初始化客户端

        Args:
            handler: 协议处理器
            connect_timeout: 连接超时（秒），同时用于判断连接是否失活
            line_delimiter: 行分隔符
            debug_level: 调试级别，0只记录连接变化，1记录连接尝试，2记录每一行
            encoding: 收发数据的编码
            reconnect_interval: 连接失败或断开后到下次尝试的最小间隔（秒）
            name: 客户端名称，用于日志区分
            clock: 时间函数，回调收到的时间由此产生
        """
        self._name = name
        self._log = get_logger(__name__, client=name)
        self._clock = clock
        self._handler: LineHandler = handler if handler is not None else LineHandler()
        bind = getattr(self._handler, "bind", None)
        if callable(bind):
            bind(self)

        # 配置
        self._hosts: List[HostTarget] = []
        self._host_now = 0
        self._current_host: Optional[HostTarget] = None
        self._connect_timeout = DEFAULT_CONNECT_TIMEOUT
        self._debug = 0
        self._encoding = encoding
        self._line_delimiter = "\n"
        self._reconnect_interval = 0.0
        self.set_connect_timeout(connect_timeout)
        self.set_debug_level(debug_level)
        self.set_reconnect_interval(reconnect_interval)

        # 连接状态
        self._state = ConnectionState.DISCONNECTED
        self._sock: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._registered_events = 0
        self._connect_started = 0.0
        self._last_data_received = 0.0
        self._next_attempt_time = 0.0
        self._next_tick = 0.0
        # 当前step的时间，回调中主动断开时沿用
        self._step_time: Optional[float] = None

        # 收发缓冲
        self._input = LineBuffer(line_delimiter, encoding)
        self.set_line_delimiter(line_delimiter)
        self._output = bytearray()
        self._output_lock = threading.Lock()

        # 运行控制
        self._stop_event = threading.Event()
        self._running = False
        self._thread: Optional[threading.Thread] = None

        # 统计信息
        self._stats = {
            "connect_attempts": 0,
            "connect_failures": 0,
            "connections": 0,
            "disconnects": 0,
            "lines_received": 0,
            "lines_queued": 0,
            "bytes_received": 0,
            "bytes_sent": 0,
        }

    # ==================== 配置 ====================

    def add_host(self, host: Union[str, HostTarget], port: Optional[int] = None) -> HostTarget:
        """
        添加目标主机，按添加顺序轮询

        主机名在每次尝试连接时于循环线程中同步解析，
        解析缓慢时会推迟tick与停止检查，对延迟敏感的场景应直接使用IP地址。

        Args:
            host: 主机名；port为None时按 "host:port" 解析
            port: 端口

        Returns:
            添加的目标
        """
        if isinstance(host, HostTarget):
            target = host
        elif port is None:
            target = HostTarget.parse(host)
        else:
            target = HostTarget(host=host, port=port)
        self._hosts.append(target)
        self._log.info(f"添加主机: {target}")
        return target

    def get_host_count(self) -> int:
        return len(self._hosts)

    @property
    def hosts(self) -> List[HostTarget]:
        return list(self._hosts)

    def set_line_delimiter(self, delimiter: str) -> None:
        """设置行分隔符，下次提取/发送时生效"""
        if not delimiter:
            raise ValueError("行分隔符不能为空")
        self._line_delimiter = delimiter
        self._input.delimiter = delimiter

    def set_connect_timeout(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError(f"连接超时必须大于0: {seconds}")
        self._connect_timeout = float(seconds)

    def set_debug_level(self, level: int) -> None:
        if level < 0:
            raise ValueError(f"调试级别不能为负数: {level}")
        self._debug = int(level)

    def set_reconnect_interval(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"重连间隔不能为负数: {seconds}")
        self._reconnect_interval = float(seconds)

    # ==================== 状态查询 ====================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def current_host(self) -> Optional[HostTarget]:
        """最近一次尝试连接的目标"""
        return self._current_host

    @property
    def pending_output(self) -> bytes:
        with self._output_lock:
            return bytes(self._output)

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        """获取统计信息"""
        return {
            **self._stats,
            "state": self._state.value,
            "current_host": str(self._current_host) if self._current_host else None,
        }

    # ==================== 发送 ====================

    def send_data(self, data: str) -> None:
        """
        将一行数据加入输出缓冲区（自动追加行分隔符）

        不会阻塞也不会直接写socket，实际发送在循环的可写处理中完成。
        可以在任何线程、任何连接状态下调用。
        """
        payload = (data + self._line_delimiter).encode(self._encoding)
        with self._output_lock:
            self._output += payload
            self._stats["lines_queued"] += 1
        if self._debug >= 2:
            self._log.debug(f">> {data}")

    # ==================== 运行控制 ====================

    def run_loop(self) -> None:
        """
        主循环，阻塞直到 request_stop() 被调用

        退出时关闭socket；若处于已连接状态会触发 on_disconnected。
        停止请求在一个tick周期内响应，但域名解析（getaddrinfo）是同步的，
        解析期间无法响应。
        """
        if self._running:
            self._log.warning("主循环已在运行")
            return

        self._running = True
        self._next_tick = self._clock() + TICK_INTERVAL
        self._log.info(f"主循环启动，主机数: {len(self._hosts)}")
        try:
            while not self._stop_event.is_set():
                self.run_once()
        finally:
            self._shutdown()
            self._log.info("主循环已退出")

    def run_once(self) -> None:
        """执行一次循环：等待IO（最长到下一个tick）、状态转换、tick"""
        timeout = max(0.0, min(self._next_tick - self._clock(), TICK_INTERVAL))
        readable, writable = self._poll(timeout)
        now = self._clock()
        self.step(now, readable, writable)
        self._maybe_tick(now)

    def request_stop(self) -> None:
        """请求停止主循环，可在其他线程或信号处理器中调用"""
        self._stop_event.set()

    def start(self) -> None:
        """在独立线程中运行主循环"""
        if self._thread and self._thread.is_alive():
            self._log.warning("线程已在运行")
            return
        self._thread = threading.Thread(target=self.run_loop, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """请求停止并等待线程结束"""
        self.request_stop()
        if self._thread:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None

    def drop_connection(self) -> None:
        """主动断开当前连接，之后循环会尝试下一个主机（仅限循环线程调用）"""
        now = self._step_time if self._step_time is not None else self._clock()
        if self._state == ConnectionState.CONNECTED:
            self._drop_connection(now, "主动断开")
        elif self._state == ConnectionState.CONNECTING:
            self._connect_failed(now, "主动取消")

    # ==================== 状态转换 ====================

    def step(self, now: float, readable: bool = False, writable: bool = False) -> ConnectionState:
        """
        状态转换函数，每次循环调用一次

        Args:
            now: 当前时间
            readable: socket可读
            writable: socket可写

        Returns:
            转换后的状态
        """
        self._step_time = now
        try:
            self._transition(now, readable, writable)
        finally:
            self._step_time = None
        return self._state

    def _transition(self, now: float, readable: bool, writable: bool) -> None:
        if self._state == ConnectionState.DISCONNECTED:
            self._begin_connect(now)

        elif self._state == ConnectionState.CONNECTING:
            if writable:
                err = self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
                if err:
                    self._connect_failed(now, errno.errorcode.get(err, str(err)))
                else:
                    self._on_connected(now)
            elif now - self._connect_started > self._connect_timeout:
                self._connect_failed(now, "连接超时")

        elif self._state == ConnectionState.CONNECTED:
            if readable:
                self._handle_read(now)
            if writable and self._state == ConnectionState.CONNECTED:
                self._handle_write(now)
            if (
                self._state == ConnectionState.CONNECTED
                and now - self._last_data_received > self._connect_timeout
            ):
                self._drop_connection(now, f"{self._connect_timeout}秒内未收到数据")

    def _begin_connect(self, now: float) -> None:
        if not self._hosts or now < self._next_attempt_time:
            return

        target = self._hosts[self._host_now % len(self._hosts)]
        self._host_now = (self._host_now + 1) % len(self._hosts)
        self._current_host = target
        self._stats["connect_attempts"] += 1
        if self._debug >= 1:
            self._log.debug(f"尝试连接: {target}")

        try:
            self._sock = self._open_socket(target.host, target.port)
        except OSError as e:
            self._connect_failed(now, str(e))
            return

        self._state = ConnectionState.CONNECTING
        self._connect_started = now

    def _open_socket(self, host: str, port: int) -> socket.socket:
        """解析地址并发起非阻塞连接"""
        family, type_, proto, _, address = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM
        )[0]
        sock = socket.socket(family, type_, proto)
        sock.setblocking(False)
        err = sock.connect_ex(address)
        if err not in _CONNECT_IN_PROGRESS:
            sock.close()
            raise OSError(err, errno.errorcode.get(err, str(err)))
        return sock

    def _connect_failed(self, now: float, reason: str) -> None:
        self._close_socket()
        self._state = ConnectionState.DISCONNECTED
        self._next_attempt_time = now + self._reconnect_interval
        self._stats["connect_failures"] += 1
        if self._debug >= 1:
            self._log.warning(f"连接 {self._current_host} 失败: {reason}")

    def _on_connected(self, now: float) -> None:
        self._state = ConnectionState.CONNECTED
        self._last_data_received = now
        self._input.reset()
        with self._output_lock:
            self._output.clear()
        self._stats["connections"] += 1
        self._log.info(f"已连接: {self._current_host}")
        self._call_handler("on_connected", now)

    def _drop_connection(self, now: float, reason: str) -> None:
        self._close_socket()
        self._state = ConnectionState.DISCONNECTED
        self._next_attempt_time = now + self._reconnect_interval
        self._stats["disconnects"] += 1
        self._log.info(f"连接断开: {self._current_host}, 原因: {reason}")
        self._call_handler("on_disconnected", now)

    def _close_socket(self) -> None:
        sock = self._sock
        if sock is None:
            return
        self._sock = None
        if self._registered_events and self._selector is not None:
            try:
                self._selector.unregister(sock)
            except (KeyError, ValueError):
                pass
        self._registered_events = 0
        try:
            sock.close()
        except OSError as e:
            self._log.debug(f"关闭socket失败: {e}")

    # ==================== 读写 ====================

    def _poll(self, timeout: float) -> Tuple[bool, bool]:
        """
        等待socket就绪

        无socket时在停止事件上等待，保证停止请求能立即被响应。

        Returns:
            (可读, 可写)
        """
        sock = self._sock
        if sock is None:
            self._stop_event.wait(timeout)
            return False, False

        if self._state == ConnectionState.CONNECTING:
            events = selectors.EVENT_WRITE
        else:
            events = selectors.EVENT_READ
            if self._output:
                events |= selectors.EVENT_WRITE

        if self._selector is None:
            self._selector = selectors.DefaultSelector()
        if not self._registered_events:
            self._selector.register(sock, events)
        elif events != self._registered_events:
            self._selector.modify(sock, events)
        self._registered_events = events

        readable = writable = False
        for _, mask in self._selector.select(timeout):
            readable = readable or bool(mask & selectors.EVENT_READ)
            writable = writable or bool(mask & selectors.EVENT_WRITE)
        return readable, writable

    def _handle_read(self, now: float) -> None:
        try:
            data = self._sock.recv(RECV_BUFFER_SIZE)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            self._drop_connection(now, f"读取错误: {e}")
            return

        if not data:
            self._drop_connection(now, "远端关闭连接")
            return

        self._last_data_received = now
        self._stats["bytes_received"] += len(data)
        self.process_input(now, data)

    def process_input(self, now: float, data: Union[bytes, str] = b"") -> int:
        """
        追加数据并分发其中所有完整的行

        Returns:
            分发的行数
        """
        lines = self._input.feed(data)
        dispatched = 0
        for line in lines:
            # 回调中断开了连接，剩余的行属于已关闭的连接
            if self._state != ConnectionState.CONNECTED:
                break
            dispatched += 1
            self._stats["lines_received"] += 1
            if self._debug >= 2:
                self._log.debug(f"<< {line}")
            self._call_handler("on_line", now, line)
        return dispatched

    def _handle_write(self, now: float) -> None:
        with self._output_lock:
            pending = bytes(self._output)
        if not pending:
            return

        try:
            sent = self._sock.send(pending)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            self._drop_connection(now, f"发送错误: {e}")
            return

        # 只有循环线程会裁剪缓冲区，其他线程只追加，前缀保持不变
        with self._output_lock:
            del self._output[:sent]
        self._stats["bytes_sent"] += sent

    # ==================== tick与回调 ====================

    def _maybe_tick(self, now: float) -> None:
        if now < self._next_tick:
            return
        self._next_tick += TICK_INTERVAL
        if self._next_tick <= now:
            # 回调耗时过长时不补发积压的tick
            self._next_tick = now + TICK_INTERVAL
        self._step_time = now
        try:
            self._call_handler("on_tick", now)
        finally:
            self._step_time = None

    def _call_handler(self, method: str, *args: Any) -> None:
        """调用处理器回调，异常只记录不传播"""
        try:
            getattr(self._handler, method)(*args)
        except Exception as e:
            self._log.exception(f"处理器回调 {method} 异常: {e}")

    def _shutdown(self) -> None:
        now = self._clock()
        if self._state == ConnectionState.CONNECTED:
            self._drop_connection(now, "停止运行")
        elif self._state == ConnectionState.CONNECTING:
            self._close_socket()
            self._state = ConnectionState.DISCONNECTED
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        self._running = False
        self._stop_event.clear()
