"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List
from .models import CertificateRecord, HostResult


class HostSourceInterface(ABC):
    """主机列表来源接口"""

    @abstractmethod
    def get_hosts(self) -> List[str]:
        """获取主机列表（host 或 host:port）"""
        pass

    @abstractmethod
    def validate_host(self, host: str) -> bool:
        """验证主机格式"""
        pass


class ChainInspectorInterface(ABC):
    """证书链检查器接口"""

    @abstractmethod
    def inspect(self, host_label: str, warn_threshold: datetime) -> Dict[bytes, CertificateRecord]:
        """检查单个主机的证书链，按签名去重"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send_flagged_notification(self, records: List[CertificateRecord]) -> bool:
        """发送需关注证书的通知"""
        pass

    @abstractmethod
    def format_notification_content(self, records: List[CertificateRecord]) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_scan_start(self, host_count: int):
        """记录扫描开始"""
        pass

    @abstractmethod
    def log_host_result(self, host_result: HostResult):
        """记录单个主机的扫描结果"""
        pass
