"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Iterator


@dataclass(frozen=True)
class SignatureAlgorithmPolicy:
    """签名算法淘汰策略"""
    name: str
    sunset_date: datetime


@dataclass(frozen=True)
class LookaheadWindow:
    """过期预警窗口（年、月、日）"""
    years: int = 0
    months: int = 0
    days: int = 0


@dataclass(frozen=True)
class CertificateRecord:
    """单个证书的分类结果"""
    host_label: str
    subject_common_name: str
    issuer_common_name: str
    signature_algorithm_label: str
    not_after: datetime
    expires_in_text: str
    expires_soon: bool
    sunset_policy: Optional[SignatureAlgorithmPolicy] = None
    error_text: Optional[str] = None

    @property
    def is_flagged(self) -> bool:
        """是否需要关注（即将过期、算法淘汰或握手失败）"""
        return self.expires_soon or bool(self.error_text)

    @property
    def sunset_date_text(self) -> str:
        if self.sunset_policy is None:
            return ""
        return self.sunset_policy.sunset_date.strftime("%b %d, %Y")

    def to_row(self) -> List[str]:
        """
        转换为报表行

        Returns:
            List[str]: NAME, SUBJECT, ISSUER, ALGO, EXPIRES, SUNSET DATE, ERROR
        """
        return [
            self.host_label,
            self.subject_common_name,
            self.issuer_common_name,
            self.signature_algorithm_label,
            self.expires_in_text,
            self.sunset_date_text,
            self.error_text or "",
        ]

    def to_dict(self) -> dict:
        """转换为可JSON序列化的字典"""
        return {
            'host': self.host_label,
            'subject': self.subject_common_name,
            'issuer': self.issuer_common_name,
            'algorithm': self.signature_algorithm_label,
            'expires_in': self.expires_in_text,
            'not_after': self.not_after.isoformat(),
            'expires_soon': self.expires_soon,
            'sunset_algorithm': self.sunset_policy.name if self.sunset_policy else None,
            'sunset_date': self.sunset_policy.sunset_date.date().isoformat() if self.sunset_policy else None,
            'error': self.error_text,
        }


@dataclass
class HostResult:
    """单个主机的扫描结果，证书按签名字节去重"""
    host_label: str
    certificates: Dict[bytes, CertificateRecord] = field(default_factory=dict)
    connection_error: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.connection_error is None


@dataclass
class ScanResult:
    """扫描结果，顺序与输入主机顺序一致"""
    hosts: List[HostResult]
    warn_threshold: datetime

    def records(self) -> Iterator[CertificateRecord]:
        for host in self.hosts:
            yield from host.certificates.values()

    def flagged_records(self) -> List[CertificateRecord]:
        return [record for record in self.records() if record.is_flagged]

    def sorted_by_host(self) -> "ScanResult":
        """按主机名排序（默认输出不使用）"""
        return ScanResult(
            hosts=sorted(self.hosts, key=lambda host: host.host_label),
            warn_threshold=self.warn_threshold
        )

    @property
    def connection_errors(self) -> List[str]:
        return [
            f"{host.host_label}: {host.connection_error}"
            for host in self.hosts if host.connection_error
        ]


@dataclass(frozen=True)
class ScanConfig:
    """扫描配置"""
    hosts: List[str] = field(default_factory=list)
    lookahead: LookaheadWindow = field(default_factory=lambda: LookaheadWindow(days=30))
    timeout: float = 10.0
    max_workers: int = 1
    sns_topic_arn: Optional[str] = None
    log_level: str = "INFO"
