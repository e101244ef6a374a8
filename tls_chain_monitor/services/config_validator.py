"""
配置验证服务
"""
import os
import re
from datetime import datetime, timezone
from typing import Dict, Any, Mapping, Optional
import logging

from ..models import LookaheadWindow, ScanConfig
from .certificate_classifier import compute_warn_threshold
from .error_handler import ConfigurationError
from .host_source import HostSource


SNS_ARN_PATTERN = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'
LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


def _int_setting(environ: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"环境变量 {name} 必须是整数: {raw}")
    if value < minimum:
        raise ConfigurationError(f"环境变量 {name} 不能小于 {minimum}: {value}")
    return value


def validate_lookahead(window: LookaheadWindow) -> LookaheadWindow:
    """
    检查预警窗口

    Raises:
        ConfigurationError: 窗口为负数，或预警时间点超出可表示的日期范围
    """
    if min(window.years, window.months, window.days) < 0:
        raise ConfigurationError("预警窗口不能为负数")

    try:
        compute_warn_threshold(datetime.now(timezone.utc), window)
    except (ValueError, OverflowError):
        raise ConfigurationError(
            f"预警窗口过大: {window.years}年{window.months}个月{window.days}天"
        )

    return window


def load_scan_config(environ: Optional[Mapping[str, str]] = None) -> ScanConfig:
    """
    从环境变量加载扫描配置

    Args:
        environ: 环境变量，默认使用 os.environ

    Returns:
        ScanConfig: 扫描配置

    Raises:
        ConfigurationError: 配置值无效
    """
    environ = os.environ if environ is None else environ

    hosts = [host.strip() for host in environ.get('DOMAINS', '').split(',') if host.strip()]

    timeout_raw = environ.get('SCAN_TIMEOUT', '').strip()
    try:
        timeout = float(timeout_raw) if timeout_raw else 10.0
    except ValueError:
        raise ConfigurationError(f"环境变量 SCAN_TIMEOUT 必须是数字: {timeout_raw}")
    if timeout <= 0:
        raise ConfigurationError(f"环境变量 SCAN_TIMEOUT 必须大于0: {timeout_raw}")

    return ScanConfig(
        hosts=hosts,
        lookahead=validate_lookahead(LookaheadWindow(
            years=_int_setting(environ, 'LOOKAHEAD_YEARS', 0),
            months=_int_setting(environ, 'LOOKAHEAD_MONTHS', 0),
            days=_int_setting(environ, 'LOOKAHEAD_DAYS', 30),
        )),
        timeout=timeout,
        max_workers=_int_setting(environ, 'SCAN_WORKERS', 1, minimum=1),
        sns_topic_arn=environ.get('SNS_TOPIC_ARN') or None,
        log_level=(environ.get('LOG_LEVEL') or 'INFO').upper(),
    )


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 必需的环境变量
        self.required_env_vars = {
            'DOMAINS': '主机列表（逗号分隔，可带端口）'
        }

        # 可选的环境变量
        self.optional_env_vars = {
            'LOOKAHEAD_YEARS': '过期预警窗口（年）',
            'LOOKAHEAD_MONTHS': '过期预警窗口（月）',
            'LOOKAHEAD_DAYS': '过期预警窗口（日）',
            'SCAN_TIMEOUT': '单个主机握手超时时间（秒）',
            'SCAN_WORKERS': '并行扫描的主机数量',
            'SNS_TOPIC_ARN': 'SNS主题ARN',
            'LOG_LEVEL': '日志级别'
        }

    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        env_validation = self.validate_environment_variables()
        validation_result['configurations']['environment'] = env_validation
        if not env_validation['is_valid']:
            validation_result['is_valid'] = False
            validation_result['errors'].extend(env_validation['errors'])
        validation_result['warnings'].extend(env_validation['warnings'])

        hosts_validation = self.validate_hosts_configuration()
        validation_result['configurations']['hosts'] = hosts_validation
        if not hosts_validation['is_valid']:
            validation_result['is_valid'] = False
            validation_result['errors'].extend(hosts_validation['errors'])
        validation_result['warnings'].extend(hosts_validation['warnings'])

        scan_validation = self.validate_scan_configuration()
        validation_result['configurations']['scan'] = scan_validation
        if not scan_validation['is_valid']:
            validation_result['is_valid'] = False
            validation_result['errors'].extend(scan_validation['errors'])

        # SNS未配置时仍可扫描，只作为警告
        sns_validation = self.validate_sns_configuration()
        validation_result['configurations']['sns'] = sns_validation
        if not sns_validation['is_valid']:
            validation_result['warnings'].extend(sns_validation['errors'])

        return validation_result

    def validate_environment_variables(self) -> Dict[str, Any]:
        """
        验证环境变量是否存在

        Returns:
            Dict[str, Any]: 环境变量验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'missing_required': [],
            'missing_optional': [],
            'present_vars': {}
        }

        for var_name, description in self.required_env_vars.items():
            value = os.getenv(var_name)
            if not value:
                result['missing_required'].append({'name': var_name, 'description': description})
                result['errors'].append(f"缺少必需的环境变量: {var_name} ({description})")
                result['is_valid'] = False
            else:
                result['present_vars'][var_name] = self._sanitize_env_value(var_name, value)

        for var_name, description in self.optional_env_vars.items():
            value = os.getenv(var_name)
            if not value:
                result['missing_optional'].append({'name': var_name, 'description': description})
            else:
                result['present_vars'][var_name] = self._sanitize_env_value(var_name, value)

        return result

    def validate_hosts_configuration(self) -> Dict[str, Any]:
        """
        验证主机列表配置

        Returns:
            Dict[str, Any]: 主机配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'total_hosts': 0,
            'valid_hosts': [],
            'invalid_hosts': []
        }

        hosts_str = os.getenv('DOMAINS', '')
        if not hosts_str.strip():
            result['is_valid'] = False
            result['errors'].append("DOMAINS环境变量为空")
            return result

        source = HostSource()
        raw_hosts = [host.strip() for host in hosts_str.split(',') if host.strip()]
        result['total_hosts'] = len(raw_hosts)

        for host in raw_hosts:
            if source.validate_host(source.clean_host(host)):
                result['valid_hosts'].append(host)
            else:
                result['invalid_hosts'].append(host)
                result['warnings'].append(f"主机格式无效: {host}")

        if not result['valid_hosts']:
            result['is_valid'] = False
            result['errors'].append("没有找到有效的主机")

        return result

    def validate_scan_configuration(self) -> Dict[str, Any]:
        """
        验证扫描参数（预警窗口、超时、并发、日志级别）

        Returns:
            Dict[str, Any]: 扫描配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'config': None
        }

        try:
            config = load_scan_config()
        except ConfigurationError as e:
            result['is_valid'] = False
            result['errors'].append(str(e))
            return result

        if config.log_level not in LOG_LEVELS:
            result['is_valid'] = False
            result['errors'].append(f"日志级别无效: {config.log_level}")

        result['config'] = {
            'lookahead': {
                'years': config.lookahead.years,
                'months': config.lookahead.months,
                'days': config.lookahead.days
            },
            'timeout': config.timeout,
            'max_workers': config.max_workers,
            'log_level': config.log_level
        }
        return result

    def validate_sns_configuration(self) -> Dict[str, Any]:
        """
        验证SNS配置

        Returns:
            Dict[str, Any]: SNS配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'topic_arn': None,
            'arn_format_valid': False
        }

        topic_arn = os.getenv('SNS_TOPIC_ARN')

        if not topic_arn:
            result['is_valid'] = False
            result['errors'].append("SNS_TOPIC_ARN环境变量未设置")
            return result

        result['topic_arn'] = topic_arn

        if re.match(SNS_ARN_PATTERN, topic_arn):
            result['arn_format_valid'] = True
        else:
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {topic_arn}")

        return result

    def _sanitize_env_value(self, var_name: str, value: str) -> str:
        """
        清理环境变量值（隐藏敏感信息）

        Args:
            var_name: 变量名
            value: 变量值

        Returns:
            str: 清理后的值
        """
        if var_name == 'SNS_TOPIC_ARN' and value.startswith('arn:'):
            # ARN类型，只显示前缀和后缀
            parts = value.split(':')
            if len(parts) >= 6:
                return f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
            return "***"

        return value

    def get_configuration_summary(self) -> str:
        """
        获取配置摘要

        Returns:
            str: 配置摘要文本
        """
        validation_result = self.validate_all_configurations()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        hosts_config = validation_result['configurations'].get('hosts', {})
        if hosts_config.get('valid_hosts'):
            lines.append(f"\n有效主机数量: {len(hosts_config['valid_hosts'])}")

        return "\n".join(lines)
