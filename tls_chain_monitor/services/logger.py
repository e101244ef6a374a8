"""
日志服务
"""
import os
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import HostResult


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "tls_chain_monitor", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = self._empty_stats()

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_hosts': 0,
            'reachable_hosts': 0,
            'unreachable_hosts': 0,
            'certificates': 0,
            'flagged_certificates': 0,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            # 输出到stderr，stdout只留给报表
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_scan_start(self, host_count: int):
        """
        记录扫描开始

        Args:
            host_count: 要扫描的主机数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_hosts'] = host_count

        self.logger.info(f"开始TLS证书链扫描，共 {host_count} 个主机")
        self.logger.info(f"扫描开始时间: {self.execution_stats['start_time'].isoformat()}")

    def log_host_result(self, host_result: HostResult):
        """
        记录单个主机的扫描结果

        Args:
            host_result: 主机扫描结果
        """
        host = host_result.host_label

        if not host_result.reachable:
            self.execution_stats['unreachable_hosts'] += 1
            self.execution_stats['errors'].append({
                'host': host,
                'error_type': 'HostConnectionError',
                'error_message': host_result.connection_error,
                'timestamp': datetime.now(timezone.utc).isoformat()
            })
            self.logger.warning(f"主机不可达 - 主机: {host}, 错误: {host_result.connection_error}")
            return

        self.execution_stats['reachable_hosts'] += 1
        self.execution_stats['certificates'] += len(host_result.certificates)

        for record in host_result.certificates.values():
            details = (
                f"主机: {record.host_label}, "
                f"主题: {record.subject_common_name}, "
                f"颁发者: {record.issuer_common_name}, "
                f"算法: {record.signature_algorithm_label}, "
                f"剩余: {record.expires_in_text}"
            )
            if record.is_flagged:
                self.execution_stats['flagged_certificates'] += 1

            if record.error_text:
                self.logger.warning(f"证书校验失败 - {details}, 错误: {record.error_text}")
            elif record.sunset_policy is not None and record.expires_soon:
                self.logger.warning(
                    f"证书使用即将淘汰的签名算法 - {details}, "
                    f"淘汰日期: {record.sunset_date_text}"
                )
            elif record.expires_soon:
                self.logger.warning(f"证书即将过期 - {details}")
            else:
                self.logger.info(f"证书正常 - {details}")

    def log_scan_end(self):
        """记录扫描结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if self.execution_stats['start_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()
        else:
            duration = 0

        self.logger.info("TLS证书链扫描完成")
        self.logger.info(f"总执行时间: {duration:.2f} 秒")
        self.logger.info(
            f"扫描统计: 总计 {self.execution_stats['total_hosts']} 个主机, "
            f"可达 {self.execution_stats['reachable_hosts']} 个, "
            f"不可达 {self.execution_stats['unreachable_hosts']} 个, "
            f"需关注证书 {self.execution_stats['flagged_certificates']} 个"
        )

    def log_notification_sent(self, notification_type: str, record_count: int, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型（如 "SNS"）
            record_count: 通知中的证书数量
            success: 是否发送成功
        """
        if success:
            self.logger.info(f"{notification_type} 通知发送成功，证书数量: {record_count}")
        else:
            self.logger.error(f"{notification_type} 通知发送失败，证书数量: {record_count}")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in {'password', 'secret', 'token', 'key', 'sns_topic_arn'} or
                key_lower.endswith(('_key', '_secret', '_password', '_token'))
            )

            if is_sensitive and isinstance(value, str) and value:
                if 'arn:' in value:
                    # ARN类型，只显示前缀和后缀
                    parts = value.split(':')
                    if len(parts) >= 6:
                        safe_value = f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
                    else:
                        safe_value = "***"
                else:
                    safe_value = value[:3] + "***" if len(value) > 3 else "***"
                safe_config[key] = safe_value
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_hosts': stats['total_hosts'],
            'reachable_hosts': stats['reachable_hosts'],
            'unreachable_hosts': stats['unreachable_hosts'],
            'certificates': stats['certificates'],
            'flagged_certificates': stats['flagged_certificates'],
            'success_rate': (
                stats['reachable_hosts'] / stats['total_hosts']
                if stats['total_hosts'] > 0 else 0
            ),
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"总主机数: {summary['total_hosts']}")
        self.logger.info(f"可达主机: {summary['reachable_hosts']}")
        self.logger.info(f"不可达主机: {summary['unreachable_hosts']}")
        self.logger.info(f"证书总数: {summary['certificates']}")
        self.logger.info(f"需关注证书: {summary['flagged_certificates']}")

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['host']} - {error['error_type']}: {error['error_message']}")

            if len(summary['errors']) > 5:
                self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = self._empty_stats()
