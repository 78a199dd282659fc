import argparse

from lineclient.app import main


def parse_args(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="TCP行协议客户端")
    parser.add_argument("--config", type=str, default=None, help="配置文件路径")
    parser.add_argument(
        "--host", type=str, action="append", default=None, help="目标主机 host:port，可重复指定"
    )
    parser.add_argument("--timeout", type=float, default=None, help="连接超时（秒）")
    parser.add_argument("--delimiter", type=str, default=None, help="行分隔符，支持转义如 \\r\\n")
    parser.add_argument("--debug", action="store_true", help="启用调试模式（输出详细日志）")
    return parser.parse_args(argv)


def run(argv=None) -> None:
    main(parse_args(argv))


if __name__ == "__main__":
    run()
