"""
日志工具模块
基于loguru实现日志记录功能

每个 TcpLineClient 通过 get_logger(__name__, client=name) 绑定自己的名称，
日志格式中的 {extra[client]} 用于区分同一进程中的多个客户端。
"""
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[client]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[client]} | {name}:{line} | {message}"


def setup_logger(
    app_name: str = "lineclient",
    log_dir: str = "./data/logs",
    log_level: str = "INFO",
    rotation: str = "00:00",  # 每天午夜轮转
    retention: str = "30 days",
    compression: str = "zip",
) -> None:
    """
    配置loguru日志系统

    控制台输出一份，日志目录下写 {app_name}_app_日期.log 与只含ERROR的 {app_name}_error_日期.log。
    未绑定客户端名称的日志记录 client 字段为 app_name。

    Args:
        app_name: 应用名称，作为日志文件前缀和默认的client字段
        log_dir: 日志目录
        log_level: 日志级别
        rotation: 日志轮转设置
        retention: 日志保留时间
        compression: 日志压缩方式
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(extra={"client": app_name})

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    for suffix, level in (("app", log_level), ("error", "ERROR")):
        logger.add(
            f"{log_dir}/{app_name}_{suffix}_{{time:YYYY-MM-DD}}.log",
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            encoding="utf-8",
        )

    logger.info(f"日志系统初始化完成，日志目录: {log_dir}")


def get_logger(name: Optional[str] = None, client: Optional[str] = None):
    """
    获取logger实例

    Args:
        name: logger名称
        client: 客户端名称，写入 extra["client"]

    Returns:
        logger实例
    """
    extra = {}
    if name:
        extra["name"] = name
    if client:
        extra["client"] = client
    if extra:
        return logger.bind(**extra)
    return logger
