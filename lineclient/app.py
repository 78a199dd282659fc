"""
控制台客户端
连接到行协议服务器，记录收到的每一行
"""
import signal

from lineclient.core.handler import LineHandler
from lineclient.core.tcp_client import TcpLineClient
from lineclient.models.object import HostTarget
from lineclient.utils.config_loader import AppConfig, ConfigLoader, SessionConfig, build_client
from lineclient.utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


class ConsoleLineHandler(LineHandler):
    """记录收到的行，连接后发送初始命令，并按间隔发送心跳"""

    def __init__(self, session: SessionConfig):
        super().__init__()
        self.session = session
        self._last_keepalive = 0.0

    def on_connected(self, time: float) -> None:
        self._last_keepalive = time
        for line in self.session.on_connect_send:
            self.client.send_data(line)

    def on_disconnected(self, time: float) -> None:
        logger.warning("与服务器的连接已断开，等待重连...")

    def on_line(self, time: float, line: str) -> None:
        logger.info(f"<< {line}")

    def on_tick(self, time: float) -> None:
        interval = self.session.keepalive_interval
        if not interval or not self.session.keepalive_message:
            return
        if not self.client or not self.client.is_connected():
            return
        if time - self._last_keepalive >= interval:
            self._last_keepalive = time
            self.client.send_data(self.session.keepalive_message)


def load_app_config(args) -> AppConfig:
    """加载配置文件并应用命令行参数"""
    config = ConfigLoader(args.config).load_config() if args.config else AppConfig()

    if args.host:
        config.client.hosts = [HostTarget.parse(h) for h in args.host]
    if args.timeout is not None:
        config.client.connect_timeout = args.timeout
    if args.delimiter is not None:
        # 命令行中允许写 \r\n 这样的转义
        config.client.line_delimiter = args.delimiter.encode().decode("unicode_escape")
    if args.debug:
        config.client.debug_level = max(config.client.debug_level, 2)
        config.logging.log_level = "DEBUG"
    return config


def main(args) -> TcpLineClient:
    """主函数"""
    config = load_app_config(args)

    # 设置日志
    setup_logger(
        app_name=config.app_name,
        log_dir=config.logging.log_dir,
        log_level=config.logging.log_level,
        rotation=config.logging.rotation,
        retention=config.logging.retention,
        compression=config.logging.compression,
    )

    handler = ConsoleLineHandler(config.session)
    client = build_client(config.client, handler, name=config.app_name)
    if not client.get_host_count():
        logger.warning("未配置任何主机，客户端将保持空闲直到停止")

    def signal_handler(signum, frame):
        """信号处理器"""
        logger.info(f"收到信号 {signum}，准备退出...")
        client.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 60)
    logger.info(f"{config.app_name} 启动")
    logger.info("=" * 60)

    client.run_loop()
    logger.info(f"统计信息: {client.get_stats()}")
    return client
