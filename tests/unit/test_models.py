import pytest
from pydantic import ValidationError

from lineclient.models.object import ConnectionState, HostTarget


@pytest.mark.unit
class TestHostTarget:
    """目标主机解析测试"""

    @pytest.mark.parametrize("text,host,port", [
        ("localhost:51000", "localhost", 51000),
        ("10.0.0.5:80", "10.0.0.5", 80),
        ("[::1]:51000", "::1", 51000),
        ("  example.com:8080 ", "example.com", 8080),
    ])
    def test_parse(self, text, host, port):
        """测试解析 host:port"""
        target = HostTarget.parse(text)
        assert target.host == host
        assert target.port == port

    @pytest.mark.parametrize("text", ["localhost", ":80", "host:abc", "host:0", "host:"])
    def test_parse_invalid(self, text):
        """测试无效地址"""
        with pytest.raises(ValueError):
            HostTarget.parse(text)

    def test_str_round_trip(self):
        """测试字符串表示"""
        assert str(HostTarget(host="localhost", port=1)) == "localhost:1"
        assert str(HostTarget.parse("[fe80::1]:9")) == "[fe80::1]:9"

    def test_empty_host(self):
        with pytest.raises(ValidationError):
            HostTarget(host=" ", port=10)


@pytest.mark.unit
def test_connection_state_values():
    """测试状态枚举值"""
    assert ConnectionState.DISCONNECTED == "disconnected"
    assert ConnectionState("connected") is ConnectionState.CONNECTED
    assert len(ConnectionState) == 3
