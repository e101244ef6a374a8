"""
主机列表来源服务
"""
import ipaddress
import os
import re
from typing import Iterable, List, Optional
import logging

from ..interfaces import HostSourceInterface
from .error_handler import ConfigurationError


class HostSource(HostSourceInterface):
    """主机列表来源实现（命令行参数、文件或环境变量）"""

    def __init__(self, hosts: Optional[Iterable[str]] = None, file_path: Optional[str] = None,
                 env_var_name: str = "DOMAINS"):
        """
        初始化主机列表来源

        Args:
            hosts: 显式指定的主机列表
            file_path: 主机列表文件，每行一个主机，# 开头为注释
            env_var_name: 环境变量名称，默认为"DOMAINS"
        """
        self.hosts = list(hosts or [])
        self.file_path = file_path
        self.env_var_name = env_var_name
        self.logger = logging.getLogger(__name__)

        # 主机名格式验证正则表达式（允许单标签主机名，如 localhost）
        self.hostname_pattern = re.compile(
            r'^(?:[a-zA-Z0-9_](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?\.)*'
            r'[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$'
        )

    def get_hosts(self) -> List[str]:
        """
        获取主机列表，优先级：显式列表 > 文件 > 环境变量

        Returns:
            List[str]: 主机列表，保持原始顺序

        Raises:
            ConfigurationError: 主机列表文件无法读取
        """
        raw_hosts = list(self.hosts)

        if self.file_path:
            raw_hosts.extend(self._read_file(self.file_path))

        if not raw_hosts:
            hosts_str = os.getenv(self.env_var_name, "")
            if not hosts_str.strip():
                self.logger.warning(f"环境变量 {self.env_var_name} 为空")
                return []
            raw_hosts = hosts_str.split(',')

        valid_hosts = []
        for host in raw_hosts:
            cleaned_host = self.clean_host(host)
            if not cleaned_host:
                continue
            if self.validate_host(cleaned_host):
                valid_hosts.append(cleaned_host)
            else:
                self.logger.warning(f"跳过无效主机: {host.strip()}")

        self.logger.info(f"成功加载 {len(valid_hosts)} 个主机")
        return valid_hosts

    def validate_host(self, host: str) -> bool:
        """
        验证主机格式（host、host:port 或 [IPv6]:port）

        Args:
            host: 要验证的主机

        Returns:
            bool: 主机是否有效
        """
        if not host or not isinstance(host, str):
            return False

        hostname, port = self._split_port(host)
        if port is not None and not (port.isdigit() and 0 < int(port) < 65536):
            return False

        if len(hostname) > 253:
            return False

        try:
            ipaddress.ip_address(hostname)
            return True
        except ValueError:
            pass

        return bool(self.hostname_pattern.match(hostname))

    def _split_port(self, host: str):
        if host.startswith('['):
            hostname, _, rest = host[1:].partition(']')
            return hostname, (rest[1:] if rest.startswith(':') else None)
        if host.count(':') > 1:
            return host, None
        if ':' in host:
            hostname, _, port = host.rpartition(':')
            return hostname, port
        return host, None

    def _read_file(self, file_path: str) -> List[str]:
        try:
            with open(file_path, encoding='utf-8') as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise ConfigurationError(f"无法读取主机列表文件 {file_path}: {e}") from e

        return [line for line in lines if line.strip() and not line.strip().startswith('#')]

    def clean_host(self, host: str) -> str:
        """
        清理主机格式，保留端口

        Args:
            host: 原始主机

        Returns:
            str: 清理后的主机
        """
        host = host.strip()

        # 移除协议前缀
        if host.startswith('https://'):
            host = host[8:]
        elif host.startswith('http://'):
            host = host[7:]

        # 移除路径部分
        if '/' in host:
            host = host.split('/')[0]

        return host.strip().lower()
