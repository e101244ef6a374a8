"""
错误处理服务
"""
import socket
import ssl
from typing import Any, Dict, List
from datetime import datetime, timezone
import logging


class HostConnectionError(ConnectionError):
    """无法获取任何证书的连接失败（DNS、拒绝连接、超时等）"""

    def __init__(self, host: str, cause: BaseException):
        self.host = host
        self.cause = cause
        super().__init__(f"连接 {host} 失败: {cause}")


class CertificateExposingError(Exception):
    """握手失败，但能拿到触发失败的证书"""

    def __init__(self, certificate_der: bytes, reason: str):
        self.certificate_der = certificate_der
        self.reason = reason
        super().__init__(reason)


class ConfigurationError(Exception):
    """配置错误，在入口处终止运行"""
    pass


class HandshakeErrorHandler:
    """TLS握手错误处理器"""

    KIND_CERTIFICATE = 'certificate'
    KIND_DNS = 'dns'
    KIND_TIMEOUT = 'timeout'
    KIND_REFUSED = 'refused'
    KIND_TLS = 'tls'
    KIND_NETWORK = 'network'

    def __init__(self):
        """初始化握手错误处理器"""
        self.logger = logging.getLogger(__name__)

    def classify(self, error: BaseException) -> str:
        """
        判断错误类别

        Args:
            error: 异常对象

        Returns:
            str: 错误类别
        """
        if isinstance(error, HostConnectionError):
            return self.classify(error.cause)

        if isinstance(error, (ssl.SSLCertVerificationError, CertificateExposingError)):
            return self.KIND_CERTIFICATE
        if isinstance(error, socket.gaierror):
            return self.KIND_DNS
        if isinstance(error, (socket.timeout, TimeoutError)):
            return self.KIND_TIMEOUT
        if isinstance(error, ConnectionRefusedError):
            return self.KIND_REFUSED
        if isinstance(error, ssl.SSLError):
            return self.KIND_TLS
        return self.KIND_NETWORK

    def describe_verification_error(self, error: ssl.SSLCertVerificationError) -> str:
        """
        获取证书校验失败的描述

        Args:
            error: 证书校验异常

        Returns:
            str: OpenSSL给出的校验信息，缺失时使用异常文本
        """
        return getattr(error, 'verify_message', None) or str(error)

    def handle_connection_error(self, host: str, error: BaseException) -> Dict[str, Any]:
        """
        处理连接错误

        Args:
            host: 主机
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        cause = error.cause if isinstance(error, HostConnectionError) else error
        error_info = {
            'host': host,
            'error_type': type(cause).__name__,
            'error_message': str(cause),
            'kind': self.classify(cause),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(cause)
        }

        self.logger.warning(f"主机 {host} 连接失败（{error_info['kind']}）: {error_info['error_message']}")

        return error_info

    def _get_suggested_action(self, error: BaseException) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        kind = self.classify(error)
        error_message = str(error).lower()

        if kind == self.KIND_TIMEOUT:
            return "检查网络连接，考虑增加超时时间"
        elif kind == self.KIND_DNS:
            return "检查主机名是否正确，DNS服务器是否可用"
        elif kind == self.KIND_REFUSED:
            return "检查目标服务器是否运行，端口是否正确"
        elif kind == self.KIND_CERTIFICATE:
            return "证书验证失败，检查证书是否有效"
        elif kind == self.KIND_TLS:
            if 'handshake failure' in error_message:
                return "TLS握手失败，检查TLS版本兼容性"
            return "TLS连接问题，检查服务器TLS配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"

    def get_error_statistics(self, error_list: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            error_list: 错误信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not error_list:
            return {
                'total_errors': 0,
                'error_kinds': {},
                'most_common_kind': None,
                'most_common_kind_count': 0
            }

        error_kinds = {}
        for error_info in error_list:
            kind = error_info.get('kind', self.KIND_NETWORK)
            error_kinds[kind] = error_kinds.get(kind, 0) + 1

        most_common = max(error_kinds.items(), key=lambda x: x[1])

        return {
            'total_errors': len(error_list),
            'error_kinds': error_kinds,
            'most_common_kind': most_common[0],
            'most_common_kind_count': most_common[1]
        }
