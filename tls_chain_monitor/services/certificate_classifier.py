"""
证书分类服务
"""
import dataclasses
import math
from datetime import datetime, timezone, timedelta
from typing import Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..models import CertificateRecord, LookaheadWindow
from .sunset_policy import SunsetPolicyTable, signature_algorithm_label


HOURS_TEXT_LIMIT = 48


def compute_warn_threshold(now: datetime, window: LookaheadWindow) -> datetime:
    """
    计算过期预警时间点

    月份溢出进位到年份，日期溢出顺延到下个月（1月31日加1个月为3月3日或2日）。

    Args:
        now: 当前时间
        window: 预警窗口

    Returns:
        datetime: 预警时间点
    """
    year_carry, month_index = divmod(now.month - 1 + window.months, 12)
    first_of_month = now.replace(year=now.year + window.years + year_carry, month=month_index + 1, day=1)
    return first_of_month + timedelta(days=now.day - 1 + window.days)


def common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    return str(attributes[0].value)


def format_expires_in(not_after: datetime, now: datetime) -> str:
    """
    格式化剩余有效期

    Args:
        not_after: 证书过期时间
        now: 当前时间

    Returns:
        str: 48小时以内显示小时数，否则显示天数（负数表示已过期）
    """
    hours = math.floor((not_after - now) / timedelta(hours=1))
    if hours <= HOURS_TEXT_LIMIT:
        return f"{hours} hours"
    return f"{hours // 24} days"


class CertificateClassifier:
    """证书分类器"""

    def __init__(self, policy_table: Optional[SunsetPolicyTable] = None):
        """
        初始化证书分类器

        Args:
            policy_table: 签名算法淘汰策略表，默认使用内置策略
        """
        self.policy_table = policy_table if policy_table is not None else SunsetPolicyTable()

    def classify(self, host_label: str, warn_threshold: datetime,
                 cert: x509.Certificate, now: Optional[datetime] = None) -> CertificateRecord:
        """
        对单个证书进行分类

        Args:
            host_label: 主机标签
            warn_threshold: 过期预警时间点
            cert: 证书
            now: 当前时间，默认取系统时间

        Returns:
            CertificateRecord: 分类结果
        """
        now = now or datetime.now(timezone.utc)
        not_after = cert.not_valid_after_utc

        expires_soon = warn_threshold > not_after

        policy = self.policy_table.lookup(cert.signature_algorithm_oid)
        if policy is not None and not_after >= policy.sunset_date:
            # 证书有效期超过算法淘汰日期
            expires_soon = True

        return CertificateRecord(
            host_label=host_label,
            subject_common_name=common_name(cert.subject),
            issuer_common_name=common_name(cert.issuer),
            signature_algorithm_label=signature_algorithm_label(cert),
            not_after=not_after,
            expires_in_text=format_expires_in(not_after, now),
            expires_soon=expires_soon,
            sunset_policy=policy
        )

    def with_error(self, record: CertificateRecord, error_text: str) -> CertificateRecord:
        """为握手失败时暴露的证书附加错误描述"""
        return dataclasses.replace(record, error_text=error_text)
