"""
签名算法淘汰策略表
"""
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import ObjectIdentifier, SignatureAlgorithmOID

from ..models import SignatureAlgorithmPolicy


# cryptography 未定义 MD2 的 OID
MD2_WITH_RSA = ObjectIdentifier("1.2.840.113549.1.1.2")
# 旧版 SHA1 with RSA OID (OIW)
SHA1_WITH_RSA_OIW = ObjectIdentifier("1.3.14.3.2.29")

SIGNATURE_ALGORITHM_LABELS = {
    MD2_WITH_RSA: "MD2-RSA",
    SignatureAlgorithmOID.RSA_WITH_MD5: "MD5-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA1: "SHA1-RSA",
    SHA1_WITH_RSA_OIW: "SHA1-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "SHA224-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "SHA256-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "SHA384-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "SHA512-RSA",
    SignatureAlgorithmOID.RSASSA_PSS: "RSASSA-PSS",
    SignatureAlgorithmOID.DSA_WITH_SHA1: "DSA-SHA1",
    SignatureAlgorithmOID.DSA_WITH_SHA224: "DSA-SHA224",
    SignatureAlgorithmOID.DSA_WITH_SHA256: "DSA-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ECDSA-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ECDSA-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ECDSA-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ECDSA-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ECDSA-SHA512",
    SignatureAlgorithmOID.ED25519: "Ed25519",
    SignatureAlgorithmOID.ED448: "Ed448",
}

_SHA1_SUNSET = datetime(2017, 1, 1, tzinfo=timezone.utc)
# MD2/MD5 使用固定的历史日期
_MD_SUNSET = datetime(2009, 1, 1, tzinfo=timezone.utc)

_SHA1_WITH_RSA = SignatureAlgorithmPolicy(name="SHA1 with RSA", sunset_date=_SHA1_SUNSET)

DEFAULT_POLICIES: Tuple[Tuple[ObjectIdentifier, SignatureAlgorithmPolicy], ...] = (
    (MD2_WITH_RSA, SignatureAlgorithmPolicy(name="MD2 with RSA", sunset_date=_MD_SUNSET)),
    (SignatureAlgorithmOID.RSA_WITH_MD5, SignatureAlgorithmPolicy(name="MD5 with RSA", sunset_date=_MD_SUNSET)),
    (SignatureAlgorithmOID.RSA_WITH_SHA1, _SHA1_WITH_RSA),
    (SHA1_WITH_RSA_OIW, _SHA1_WITH_RSA),
    (SignatureAlgorithmOID.DSA_WITH_SHA1, SignatureAlgorithmPolicy(name="DSA with SHA1", sunset_date=_SHA1_SUNSET)),
    (SignatureAlgorithmOID.ECDSA_WITH_SHA1, SignatureAlgorithmPolicy(name="ECDSA with SHA1", sunset_date=_SHA1_SUNSET)),
)


class SunsetPolicyTable:
    """
    签名算法淘汰策略表

    启动时构建一次，之后只读，按引用传递给证书分类器。
    """

    def __init__(self, policies: Iterable[Tuple[ObjectIdentifier, SignatureAlgorithmPolicy]] = DEFAULT_POLICIES):
        """
        初始化策略表

        Args:
            policies: (算法OID, 策略) 序列

        Raises:
            ValueError: 同一算法出现多条策略
        """
        table = {}
        for oid, policy in policies:
            if oid in table:
                raise ValueError(f"签名算法 {oid.dotted_string} 存在重复的淘汰策略")
            table[oid] = policy
        self._policies: Mapping[ObjectIdentifier, SignatureAlgorithmPolicy] = MappingProxyType(table)

    @property
    def policies(self) -> Mapping[ObjectIdentifier, SignatureAlgorithmPolicy]:
        return self._policies

    def lookup(self, oid: ObjectIdentifier) -> Optional[SignatureAlgorithmPolicy]:
        return self._policies.get(oid)

    def __contains__(self, oid: ObjectIdentifier) -> bool:
        return oid in self._policies

    def __len__(self) -> int:
        return len(self._policies)


def signature_algorithm_label(cert: x509.Certificate) -> str:
    """
    获取证书签名算法的简短标签

    Args:
        cert: 证书

    Returns:
        str: 如 "SHA256-RSA"，未知算法返回OID点分字符串
    """
    oid = cert.signature_algorithm_oid
    return SIGNATURE_ALGORITHM_LABELS.get(oid, oid.dotted_string)
