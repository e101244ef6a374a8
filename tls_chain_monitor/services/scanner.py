"""
扫描编排服务
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from ..interfaces import ChainInspectorInterface
from ..models import HostResult, LookaheadWindow, ScanResult
from .certificate_classifier import compute_warn_threshold
from .error_handler import HandshakeErrorHandler, HostConnectionError


HostOutcome = Tuple[HostResult, Optional[Dict[str, Any]]]


class ScanOrchestrator:
    """按主机依次（或并行）检查证书链并汇总结果"""

    def __init__(self, inspector: ChainInspectorInterface, max_workers: int = 1,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化扫描编排器

        Args:
            inspector: 证书链检查器
            max_workers: 并行扫描的主机数量，1表示顺序扫描
            clock: 当前时间来源
        """
        self.inspector = inspector
        self.max_workers = max(1, max_workers)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)
        self.error_handler = HandshakeErrorHandler()
        self.errors = []

    def scan(self, hostnames: Sequence[str], lookahead: LookaheadWindow) -> ScanResult:
        """
        扫描所有主机

        Args:
            hostnames: 主机列表（保持输入顺序）
            lookahead: 过期预警窗口

        Returns:
            ScanResult: 扫描结果
        """
        # 所有主机使用同一个预警时间点
        warn_threshold = compute_warn_threshold(self.clock(), lookahead)

        self.logger.info(f"开始扫描 {len(hostnames)} 个主机，预警时间点: {warn_threshold.isoformat()}")

        if self.max_workers == 1 or len(hostnames) <= 1:
            outcomes = [self._scan_host(host, warn_threshold) for host in hostnames]
        else:
            outcomes = self._scan_parallel(hostnames, warn_threshold)

        hosts = [host_result for host_result, _ in outcomes]
        self.errors = [error_info for _, error_info in outcomes if error_info is not None]

        return ScanResult(hosts=hosts, warn_threshold=warn_threshold)

    def _scan_parallel(self, hostnames: Sequence[str], warn_threshold: datetime) -> List[HostOutcome]:
        # 按原始下标收集，保持输入顺序
        outcomes: List[Optional[HostOutcome]] = [None] * len(hostnames)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._scan_host, host, warn_threshold): index
                for index, host in enumerate(hostnames)
            }
            for future, index in futures.items():
                outcomes[index] = future.result()

        return outcomes

    def _scan_host(self, host: str, warn_threshold: datetime) -> HostOutcome:
        try:
            certificates = self.inspector.inspect(host, warn_threshold)
        except HostConnectionError as e:
            # 单个主机不可达不影响其他主机
            error_info = self.error_handler.handle_connection_error(host, e)
            return HostResult(host_label=host, connection_error=str(e.cause)), error_info

        return HostResult(host_label=host, certificates=certificates), None
