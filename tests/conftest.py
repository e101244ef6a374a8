"""
测试公共fixture
"""
from unittest.mock import patch

import pytest

from _certs import FakeNetwork, LocalTLSServer


@pytest.fixture
def fake_network():
    """模拟TLS网络，不发起真实连接"""
    network = FakeNetwork()
    with patch('tls_chain_monitor.services.chain_inspector.socket.create_connection',
               side_effect=network.create_connection), \
         patch('tls_chain_monitor.services.chain_inspector.ssl.create_default_context',
               side_effect=network.create_default_context):
        yield network


@pytest.fixture
def tls_server(tmp_path):
    """启动本地TLS服务端，返回启动函数"""
    servers = []

    def start(credentials) -> LocalTLSServer:
        certfile = tmp_path / f"chain-{len(servers)}.pem"
        keyfile = tmp_path / f"key-{len(servers)}.pem"
        certfile.write_bytes(credentials['chain'])
        keyfile.write_bytes(credentials['key'])
        server = LocalTLSServer(str(certfile), str(keyfile))
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.close()
