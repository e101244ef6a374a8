"""
TLS证书链检查服务
"""
import ssl
import socket
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging

from cryptography import x509

from ..interfaces import ChainInspectorInterface
from ..models import CertificateRecord
from .certificate_classifier import CertificateClassifier
from .error_handler import CertificateExposingError, HandshakeErrorHandler, HostConnectionError


DEFAULT_TLS_PORT = 443


def normalize_address(host: str, default_port: int = DEFAULT_TLS_PORT) -> Tuple[str, int, str]:
    """
    解析主机地址，没有端口时使用默认端口

    Args:
        host: host、host:port、[v6]:port 或 IPv6 字面量

    Returns:
        Tuple[str, int, str]: (主机名, 端口, 规范化标签 host:port)

    Raises:
        ValueError: 端口不是整数
    """
    host = host.strip()

    if host.startswith('['):
        hostname, _, rest = host[1:].partition(']')
        port = int(rest[1:]) if rest.startswith(':') else default_port
        return hostname, port, f"[{hostname}]:{port}"

    if host.count(':') > 1:
        # 未加方括号的IPv6地址
        return host, default_port, f"[{host}]:{default_port}"

    if ':' not in host:
        return host, default_port, f"{host}:{default_port}"

    hostname, _, port_text = host.rpartition(':')
    port = int(port_text)
    return hostname, port, f"{hostname}:{port}"


class ChainInspector(ChainInspectorInterface):
    """证书链检查器实现"""

    def __init__(self, classifier: Optional[CertificateClassifier] = None,
                 timeout: float = 10.0, default_port: int = DEFAULT_TLS_PORT):
        """
        初始化证书链检查器

        Args:
            classifier: 证书分类器
            timeout: 单个主机的连接与握手超时时间（秒）
            default_port: 默认TLS端口
        """
        self.classifier = classifier or CertificateClassifier()
        self.timeout = timeout
        self.default_port = default_port
        self.logger = logging.getLogger(__name__)
        self.error_handler = HandshakeErrorHandler()

    def inspect(self, host_label: str, warn_threshold: datetime) -> Dict[bytes, CertificateRecord]:
        """
        检查单个主机的证书链

        Args:
            host_label: 主机（可带端口）
            warn_threshold: 过期预警时间点

        Returns:
            Dict[bytes, CertificateRecord]: 以证书签名字节为键的分类结果

        Raises:
            HostConnectionError: 连接失败且无法获取证书
        """
        try:
            hostname, port, label = normalize_address(host_label, self.default_port)
        except ValueError as e:
            raise HostConnectionError(host_label, e) from e

        try:
            chain = self._get_verified_chain(hostname, port, label)
        except CertificateExposingError as e:
            cert = self._load_certificate(e.certificate_der, label)
            record = self.classifier.classify(label, warn_threshold, cert)
            self.logger.info(f"主机 {label} 证书校验失败: {e.reason}")
            return {cert.signature: self.classifier.with_error(record, e.reason)}

        certificates = {}
        for der in chain:
            cert = self._load_certificate(der, label)
            if cert.signature in certificates:
                continue
            certificates[cert.signature] = self.classifier.classify(label, warn_threshold, cert)

        self.logger.debug(f"主机 {label} 证书链包含 {len(chain)} 个证书，去重后 {len(certificates)} 个")
        return certificates

    def _get_verified_chain(self, hostname: str, port: int, label: str) -> List[bytes]:
        """
        使用系统默认信任库完成握手并获取已验证的证书链

        Args:
            hostname: 主机名
            port: 端口
            label: 主机标签

        Returns:
            List[bytes]: DER编码的证书链

        Raises:
            CertificateExposingError: 证书校验失败
            HostConnectionError: 连接失败
        """
        context = ssl.create_default_context()

        try:
            with socket.create_connection((hostname, port), timeout=self.timeout) as sock:
                with context.wrap_socket(sock, server_hostname=hostname) as ssock:
                    return self._peer_chain(ssock)

        except ssl.SSLCertVerificationError as e:
            reason = self.error_handler.describe_verification_error(e)
            certificate_der = self._get_unverified_certificate(hostname, port, label)
            raise CertificateExposingError(certificate_der, reason) from e

        except OSError as e:
            raise HostConnectionError(label, e) from e

    def _get_unverified_certificate(self, hostname: str, port: int, label: str) -> bytes:
        """
        不做校验重新握手，仅用于读取触发校验失败的对端证书

        ssl 模块的校验异常不携带出错的证书，这里只能取到叶子证书，
        即使校验失败发生在中间证书上。

        Raises:
            HostConnectionError: 连接失败或对端未提供证书
        """
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        try:
            with socket.create_connection((hostname, port), timeout=self.timeout) as sock:
                with context.wrap_socket(sock, server_hostname=hostname) as ssock:
                    certificate_der = ssock.getpeercert(binary_form=True)
        except OSError as e:
            raise HostConnectionError(label, e) from e

        if not certificate_der:
            raise HostConnectionError(label, ssl.SSLError("对端未提供证书"))

        return certificate_der

    def _peer_chain(self, ssock: ssl.SSLSocket) -> List[bytes]:
        get_verified_chain = getattr(ssock, 'get_verified_chain', None)
        if get_verified_chain is not None:
            return list(get_verified_chain())

        # Python 3.10-3.12 只在底层 _ssl 对象上提供已验证的证书链
        chain = ssock._sslobj.get_verified_chain() or []
        return [cert.public_bytes(ssl._ssl.ENCODING_DER) for cert in chain]

    def _load_certificate(self, der: bytes, label: str) -> x509.Certificate:
        try:
            return x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise HostConnectionError(label, e) from e
