"""
ConfigLoader 单元测试

测试配置加载器的核心功能，包括：
- 配置模型验证
- YAML加载与缓存
- 根据配置创建客户端
"""

import pytest
import yaml
from pydantic import ValidationError

from lineclient.core.tcp_client import DEFAULT_CONNECT_TIMEOUT, TcpLineClient
from lineclient.models.object import HostTarget
from lineclient.utils.config_loader import (
    AppConfig,
    ClientConfig,
    ConfigLoader,
    LogConfig,
    SessionConfig,
    build_client,
)


# ==================== Fixtures ====================


@pytest.fixture
def sample_config_yaml():
    """示例 config.yaml 内容"""
    return {
        "app_name": "xplane",
        "client": {
            "hosts": ["127.0.0.1:51000", {"host": "backup", "port": 51001}],
            "connect_timeout": 3,
            "line_delimiter": "\r\n",
            "debug_level": 1,
        },
        "logging": {"log_dir": "/tmp/logs", "log_level": "DEBUG"},
        "session": {"on_connect_send": ["sub a", "sub b"], "keepalive_interval": 2.5,
                    "keepalive_message": "ping"},
    }


@pytest.fixture
def config_file(tmp_path, sample_config_yaml):
    path = tmp_path / "config.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(sample_config_yaml, f)
    return path


# ==================== TestConfigModels ====================


@pytest.mark.unit
class TestConfigModels:
    """配置模型测试"""

    def test_client_config_defaults(self):
        """测试默认值"""
        config = ClientConfig()

        assert config.hosts == []
        assert config.connect_timeout == DEFAULT_CONNECT_TIMEOUT
        assert config.line_delimiter == "\n"
        assert config.debug_level == 0

    def test_hosts_accept_single_string(self):
        """测试单个主机字符串"""
        config = ClientConfig(hosts="localhost:51000")

        assert config.hosts == [HostTarget(host="localhost", port=51000)]

    def test_invalid_values(self):
        """测试无效参数"""
        with pytest.raises(ValidationError):
            ClientConfig(connect_timeout=0)
        with pytest.raises(ValidationError):
            ClientConfig(line_delimiter="")
        with pytest.raises(ValidationError):
            ClientConfig(debug_level=-1)
        with pytest.raises(ValueError):
            ClientConfig(hosts=["no-port"])
        with pytest.raises(ValidationError):
            SessionConfig(keepalive_interval=-1)

    def test_app_config_defaults(self):
        """测试全局配置默认值"""
        config = AppConfig()

        assert config.app_name == "lineclient"
        assert isinstance(config.client, ClientConfig)
        assert isinstance(config.logging, LogConfig)
        assert config.session.keepalive_interval == 0.0


# ==================== TestConfigLoader ====================


@pytest.mark.unit
class TestConfigLoader:
    """配置加载器测试"""

    def test_load_config(self, config_file):
        """测试加载配置文件"""
        config = ConfigLoader(config_file).load_config()

        assert config.app_name == "xplane"
        assert [str(h) for h in config.client.hosts] == ["127.0.0.1:51000", "backup:51001"]
        assert config.client.line_delimiter == "\r\n"
        assert config.logging.log_level == "DEBUG"
        assert config.session.on_connect_send == ["sub a", "sub b"]

    def test_load_config_cached(self, config_file):
        """测试配置缓存"""
        loader = ConfigLoader(config_file)

        assert loader.load_config() is loader.load_config()

    def test_missing_file(self, tmp_path):
        """测试配置文件不存在"""
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path / "missing.yaml").load_config()

    def test_empty_file(self, tmp_path):
        """测试空配置文件使用默认值"""
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = ConfigLoader(path).load_config()

        assert config.client.hosts == []


# ==================== TestBuildClient ====================


@pytest.mark.unit
class TestBuildClient:
    """根据配置创建客户端测试"""

    def test_build_client(self, config_file):
        config = ConfigLoader(config_file).load_config()

        client = build_client(config.client, name="xplane")

        assert isinstance(client, TcpLineClient)
        assert client.get_host_count() == 2
        assert client._connect_timeout == 3.0
        assert client._line_delimiter == "\r\n"
        assert client._debug == 1
