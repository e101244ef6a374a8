"""
扫描编排器测试
"""
import time
from datetime import datetime, timezone, timedelta
from unittest.mock import Mock

from tls_chain_monitor.models import LookaheadWindow
from tls_chain_monitor.services.certificate_classifier import CertificateClassifier
from tls_chain_monitor.services.error_handler import HostConnectionError
from tls_chain_monitor.services.scanner import ScanOrchestrator
from _certs import FakeCertificate


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class StubInspector:
    """按主机返回预置结果的检查器"""

    def __init__(self, delays=None):
        self.classifier = CertificateClassifier()
        self.delays = delays or {}
        self.thresholds = []

    def inspect(self, host_label, warn_threshold):
        self.thresholds.append(warn_threshold)
        time.sleep(self.delays.get(host_label, 0))
        if host_label.startswith("down"):
            raise HostConnectionError(host_label, ConnectionRefusedError(111, "Connection refused"))

        cert = FakeCertificate(NOW + timedelta(days=3), subject_cn=host_label, signature=host_label.encode())
        record = self.classifier.classify(host_label, warn_threshold, cert, now=NOW)
        return {cert.signature: record}


class TestScanOrchestrator:
    """扫描编排器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.inspector = StubInspector()
        self.orchestrator = ScanOrchestrator(self.inspector, clock=lambda: NOW)

    def test_preserves_input_order(self):
        hosts = ["c.example.com", "a.example.com", "b.example.com"]

        result = self.orchestrator.scan(hosts, LookaheadWindow(days=7))

        assert [host.host_label for host in result.hosts] == hosts
        assert [record.subject_common_name for record in result.records()] == hosts

    def test_warn_threshold_computed_once(self):
        """测试所有主机共用同一个预警时间点"""
        clock = Mock(side_effect=[NOW, NOW + timedelta(hours=1), NOW + timedelta(hours=2)])
        orchestrator = ScanOrchestrator(self.inspector, clock=clock)

        result = orchestrator.scan(["a.example.com", "b.example.com", "c.example.com"], LookaheadWindow(days=7))

        assert clock.call_count == 1
        assert result.warn_threshold == NOW + timedelta(days=7)
        assert set(self.inspector.thresholds) == {NOW + timedelta(days=7)}

    def test_unreachable_host_does_not_abort(self):
        """测试单个主机不可达不影响其他主机"""
        result = self.orchestrator.scan(["a.example.com", "down.example.com", "b.example.com"],
                                        LookaheadWindow(days=7))

        assert [host.reachable for host in result.hosts] == [True, False, True]
        assert result.hosts[1].certificates == {}
        assert "Connection refused" in result.hosts[1].connection_error
        assert len(list(result.records())) == 2

        assert len(self.orchestrator.errors) == 1
        assert self.orchestrator.errors[0]['host'] == "down.example.com"
        assert self.orchestrator.errors[0]['kind'] == 'refused'

    def test_errors_reset_between_scans(self):
        self.orchestrator.scan(["down.example.com"], LookaheadWindow())
        self.orchestrator.scan(["a.example.com"], LookaheadWindow())

        assert self.orchestrator.errors == []

    def test_empty_host_list(self):
        result = self.orchestrator.scan([], LookaheadWindow(days=7))

        assert result.hosts == []
        assert list(result.records()) == []

    def test_flagged_records(self):
        """测试预警窗口内的证书被标记"""
        result = self.orchestrator.scan(["a.example.com"], LookaheadWindow(days=7))
        assert len(result.flagged_records()) == 1

        result = self.orchestrator.scan(["a.example.com"], LookaheadWindow(days=1))
        assert result.flagged_records() == []

    def test_parallel_scan_preserves_order(self):
        """测试并行扫描仍按输入顺序返回"""
        inspector = StubInspector(delays={"a.example.com": 0.2, "b.example.com": 0.1})
        orchestrator = ScanOrchestrator(inspector, max_workers=3, clock=lambda: NOW)
        hosts = ["a.example.com", "b.example.com", "down.example.com", "c.example.com"]

        result = orchestrator.scan(hosts, LookaheadWindow(days=7))

        assert [host.host_label for host in result.hosts] == hosts
        assert [host.reachable for host in result.hosts] == [True, True, False, True]
        assert len(orchestrator.errors) == 1

    def test_invalid_worker_count_falls_back_to_sequential(self):
        orchestrator = ScanOrchestrator(self.inspector, max_workers=0, clock=lambda: NOW)
        assert orchestrator.max_workers == 1
