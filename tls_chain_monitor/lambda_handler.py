"""
AWS Lambda函数入口点
"""
import os
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from .models import CertificateRecord, ScanConfig, ScanResult
from .services.certificate_classifier import CertificateClassifier
from .services.chain_inspector import ChainInspector
from .services.config_validator import load_scan_config
from .services.error_handler import ConfigurationError
from .services.host_source import HostSource
from .services.logger import LoggerService
from .services.scanner import ScanOrchestrator
from .services.sns_notification import SNSNotificationService
from .services.sunset_policy import SunsetPolicyTable


class TLSChainMonitor:
    """TLS证书链监控器主类"""

    def __init__(self, config: Optional[ScanConfig] = None, host_source: Optional[HostSource] = None):
        """
        初始化监控器

        Args:
            config: 扫描配置，默认从环境变量加载

        Raises:
            ConfigurationError: 环境变量配置无效
        """
        self.config = config or load_scan_config()
        self.logger_service = LoggerService(log_level=self.config.log_level)
        self.host_source = host_source or HostSource(hosts=self.config.hosts)

        # 策略表在启动时构建一次
        self.policy_table = SunsetPolicyTable()
        self.inspector = ChainInspector(
            classifier=CertificateClassifier(self.policy_table),
            timeout=self.config.timeout
        )
        self.orchestrator = ScanOrchestrator(self.inspector, max_workers=self.config.max_workers)
        self.notification_service = SNSNotificationService(topic_arn=self.config.sns_topic_arn)

        self._log_configuration()

    def _log_configuration(self):
        """记录系统配置信息"""
        config = {
            'hosts': ','.join(self.config.hosts),
            'lookahead': (
                f"{self.config.lookahead.years}y{self.config.lookahead.months}m{self.config.lookahead.days}d"
            ),
            'timeout': self.config.timeout,
            'max_workers': self.config.max_workers,
            'sns_topic_arn': self.config.sns_topic_arn or '',
            'log_level': self.config.log_level,
            'lambda_function_name': os.getenv('AWS_LAMBDA_FUNCTION_NAME', 'unknown')
        }

        self.logger_service.log_configuration_info(config)

    def execute(self) -> ScanResult:
        """
        执行TLS证书链扫描

        Returns:
            ScanResult: 扫描结果
        """
        hosts = self.host_source.get_hosts()

        if not hosts:
            self.logger_service.logger.warning("没有找到要扫描的主机")

        self.logger_service.log_scan_start(len(hosts))

        result = self.orchestrator.scan(hosts, self.config.lookahead)
        for host_result in result.hosts:
            self.logger_service.log_host_result(host_result)

        self._send_notifications(result.flagged_records())

        self.logger_service.log_scan_end()
        self.logger_service.log_execution_summary()

        return result

    def _send_notifications(self, flagged: List[CertificateRecord]) -> bool:
        """
        发送需关注证书的通知

        Args:
            flagged: 需关注的证书记录

        Returns:
            bool: 通知是否发送成功
        """
        if not flagged:
            self.logger_service.logger.info("所有证书状态正常，无需发送通知")
            return True

        if not self.notification_service.enabled:
            self.logger_service.logger.info("未配置SNS主题，跳过通知发送")
            return False

        sent = self.notification_service.send_flagged_notification(flagged)
        self.logger_service.log_notification_sent("SNS", len(flagged), sent)
        return sent


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    try:
        monitor = TLSChainMonitor()
    except ConfigurationError as e:
        return {
            'statusCode': 500,
            'body': {
                'message': 'TLS Chain Monitor configuration is invalid',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    result = monitor.execute()
    summary = monitor.logger_service.get_execution_summary()
    flagged = result.flagged_records()
    orchestrator = monitor.orchestrator

    response = {
        'statusCode': 200,
        'body': {
            'message': 'TLS Chain Monitor executed successfully',
            'summary': {
                'total_hosts': summary['total_hosts'],
                'reachable_hosts': summary['reachable_hosts'],
                'unreachable_hosts': summary['unreachable_hosts'],
                'certificates': summary['certificates'],
                'flagged_certificates': len(flagged),
                'execution_time_seconds': summary['duration_seconds'],
                'warn_threshold': result.warn_threshold.isoformat()
            },
            'flagged': [record.to_dict() for record in flagged],
            'errors': result.connection_errors[:5],  # 只返回前5个错误
            'error_statistics': orchestrator.error_handler.get_error_statistics(orchestrator.errors),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }

    if summary['total_hosts'] == 0:
        response['statusCode'] = 500
        response['body']['message'] = 'TLS Chain Monitor found no hosts to scan'

    return response
