"""
配置加载与验证测试
"""
import pytest
import os
from unittest.mock import patch

from tls_chain_monitor.models import LookaheadWindow
from tls_chain_monitor.services.config_validator import ConfigValidator, load_scan_config, validate_lookahead
from tls_chain_monitor.services.error_handler import ConfigurationError


class TestLoadScanConfig:
    """扫描配置加载测试类"""

    def test_defaults(self):
        config = load_scan_config({})

        assert config.hosts == []
        assert config.lookahead == LookaheadWindow(years=0, months=0, days=30)
        assert config.timeout == 10.0
        assert config.max_workers == 1
        assert config.sns_topic_arn is None
        assert config.log_level == "INFO"

    def test_all_values(self):
        config = load_scan_config({
            'DOMAINS': 'a.example.com, b.example.com:8443,,',
            'LOOKAHEAD_YEARS': '1',
            'LOOKAHEAD_MONTHS': '2',
            'LOOKAHEAD_DAYS': '3',
            'SCAN_TIMEOUT': '2.5',
            'SCAN_WORKERS': '4',
            'SNS_TOPIC_ARN': 'arn:aws:sns:us-east-1:123456789012:tls-alerts',
            'LOG_LEVEL': 'debug',
        })

        assert config.hosts == ['a.example.com', 'b.example.com:8443']
        assert config.lookahead == LookaheadWindow(years=1, months=2, days=3)
        assert config.timeout == 2.5
        assert config.max_workers == 4
        assert config.sns_topic_arn == 'arn:aws:sns:us-east-1:123456789012:tls-alerts'
        assert config.log_level == "DEBUG"

    @patch.dict(os.environ, {'DOMAINS': 'env.example.com', 'LOOKAHEAD_DAYS': '7'}, clear=True)
    def test_reads_os_environ(self):
        config = load_scan_config()

        assert config.hosts == ['env.example.com']
        assert config.lookahead.days == 7

    def test_blank_values_use_defaults(self):
        config = load_scan_config({'LOOKAHEAD_DAYS': ' ', 'SCAN_TIMEOUT': ''})

        assert config.lookahead.days == 30
        assert config.timeout == 10.0

    @pytest.mark.parametrize("environ", [
        {'LOOKAHEAD_DAYS': 'abc'},
        {'LOOKAHEAD_MONTHS': '-1'},
        {'LOOKAHEAD_YEARS': '1.5'},
        {'SCAN_WORKERS': '0'},
        {'SCAN_TIMEOUT': 'fast'},
        {'SCAN_TIMEOUT': '0'},
        {'SCAN_TIMEOUT': '-3'},
        {'LOOKAHEAD_YEARS': '10000'},
        {'LOOKAHEAD_MONTHS': '200000'},
        {'LOOKAHEAD_DAYS': '1000000000'},
    ])
    def test_invalid_values(self, environ):
        """测试无效配置值"""
        with pytest.raises(ConfigurationError):
            load_scan_config(environ)


class TestValidateLookahead:
    """预警窗口检查测试类"""

    def test_valid_window(self):
        window = LookaheadWindow(years=5, months=13, days=400)
        assert validate_lookahead(window) is window

    def test_negative_window(self):
        with pytest.raises(ConfigurationError, match="负数"):
            validate_lookahead(LookaheadWindow(days=-1))

    @pytest.mark.parametrize("window", [
        LookaheadWindow(years=10000),
        LookaheadWindow(months=12 * 10000),
        LookaheadWindow(days=10 ** 9),
        LookaheadWindow(years=7900, days=10 ** 6),
    ])
    def test_beyond_date_range(self, window):
        """测试预警时间点超出日期范围"""
        with pytest.raises(ConfigurationError, match="预警窗口过大"):
            validate_lookahead(window)


class TestConfigValidator:
    """配置验证器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.validator = ConfigValidator()

    def test_init(self):
        assert 'DOMAINS' in self.validator.required_env_vars
        assert 'SNS_TOPIC_ARN' in self.validator.optional_env_vars
        assert 'LOOKAHEAD_DAYS' in self.validator.optional_env_vars

    @patch.dict(os.environ, {
        'DOMAINS': 'example.com,test.org',
        'SNS_TOPIC_ARN': 'arn:aws:sns:us-east-1:123456789012:tls-alerts',
        'LOG_LEVEL': 'INFO'
    }, clear=True)
    def test_validate_environment_variables_success(self):
        result = self.validator.validate_environment_variables()

        assert result['is_valid'] is True
        assert result['errors'] == []
        assert result['present_vars']['DOMAINS'] == 'example.com,test.org'
        assert result['present_vars']['SNS_TOPIC_ARN'] == 'arn:aws:sns:***:123456789012:tls-alerts'
        assert {item['name'] for item in result['missing_optional']} >= {'SCAN_TIMEOUT', 'SCAN_WORKERS'}

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_environment_variables_missing_required(self):
        """测试缺少必需环境变量"""
        result = self.validator.validate_environment_variables()

        assert result['is_valid'] is False
        assert result['missing_required'][0]['name'] == 'DOMAINS'
        assert "缺少必需的环境变量: DOMAINS" in result['errors'][0]

    @patch.dict(os.environ, {'DOMAINS': 'example.com, https://test.org/path ,bad..host,[::1]:8443'})
    def test_validate_hosts_configuration_with_invalid(self):
        result = self.validator.validate_hosts_configuration()

        assert result['is_valid'] is True
        assert result['total_hosts'] == 4
        assert result['valid_hosts'] == ['example.com', 'https://test.org/path', '[::1]:8443']
        assert result['invalid_hosts'] == ['bad..host']
        assert result['warnings'] == ["主机格式无效: bad..host"]

    @patch.dict(os.environ, {'DOMAINS': '  '})
    def test_validate_hosts_configuration_empty(self):
        result = self.validator.validate_hosts_configuration()

        assert result['is_valid'] is False
        assert "DOMAINS环境变量为空" in result['errors']

    @patch.dict(os.environ, {'DOMAINS': 'bad..host,example.com:99999'})
    def test_validate_hosts_configuration_all_invalid(self):
        result = self.validator.validate_hosts_configuration()

        assert result['is_valid'] is False
        assert "没有找到有效的主机" in result['errors']

    @patch.dict(os.environ, {'LOOKAHEAD_MONTHS': '3', 'SCAN_WORKERS': '8', 'LOG_LEVEL': 'warning'}, clear=True)
    def test_validate_scan_configuration_success(self):
        result = self.validator.validate_scan_configuration()

        assert result['is_valid'] is True
        assert result['config']['lookahead'] == {'years': 0, 'months': 3, 'days': 30}
        assert result['config']['max_workers'] == 8
        assert result['config']['log_level'] == 'WARNING'

    @patch.dict(os.environ, {'SCAN_WORKERS': 'many'}, clear=True)
    def test_validate_scan_configuration_invalid_value(self):
        result = self.validator.validate_scan_configuration()

        assert result['is_valid'] is False
        assert "SCAN_WORKERS" in result['errors'][0]

    @patch.dict(os.environ, {'LOG_LEVEL': 'VERBOSE'}, clear=True)
    def test_validate_scan_configuration_invalid_log_level(self):
        result = self.validator.validate_scan_configuration()

        assert result['is_valid'] is False
        assert result['errors'] == ["日志级别无效: VERBOSE"]

    @patch.dict(os.environ, {'SNS_TOPIC_ARN': 'arn:aws:sns:us-east-1:123456789012:tls-alerts'})
    def test_validate_sns_configuration_success(self):
        result = self.validator.validate_sns_configuration()

        assert result['is_valid'] is True
        assert result['arn_format_valid'] is True

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_sns_configuration_missing(self):
        result = self.validator.validate_sns_configuration()

        assert result['is_valid'] is False
        assert result['errors'] == ["SNS_TOPIC_ARN环境变量未设置"]

    @patch.dict(os.environ, {'SNS_TOPIC_ARN': 'arn:aws:s3:::bucket'})
    def test_validate_sns_configuration_invalid_arn(self):
        result = self.validator.validate_sns_configuration()

        assert result['is_valid'] is False
        assert "SNS主题ARN格式无效" in result['errors'][0]

    def test_sanitize_env_value(self):
        assert self.validator._sanitize_env_value(
            'SNS_TOPIC_ARN', 'arn:aws:sns:us-east-1:123456789012:tls-alerts'
        ) == 'arn:aws:sns:***:123456789012:tls-alerts'
        assert self.validator._sanitize_env_value('SNS_TOPIC_ARN', 'arn:short') == '***'
        assert self.validator._sanitize_env_value('DOMAINS', 'example.com') == 'example.com'

    @patch.dict(os.environ, {'DOMAINS': 'example.com'}, clear=True)
    def test_validate_all_configurations_sns_optional(self):
        """测试未配置SNS时只产生警告"""
        result = self.validator.validate_all_configurations()

        assert result['is_valid'] is True
        assert "SNS_TOPIC_ARN环境变量未设置" in result['warnings']
        assert set(result['configurations']) == {'environment', 'hosts', 'scan', 'sns'}

    @patch.dict(os.environ, {'LOOKAHEAD_DAYS': '-5'}, clear=True)
    def test_validate_all_configurations_failure(self):
        result = self.validator.validate_all_configurations()

        assert result['is_valid'] is False
        assert any("DOMAINS" in error for error in result['errors'])
        assert any("LOOKAHEAD_DAYS" in error for error in result['errors'])

    @patch.dict(os.environ, {
        'DOMAINS': 'example.com,test.org',
        'SNS_TOPIC_ARN': 'arn:aws:sns:us-east-1:123456789012:tls-alerts'
    }, clear=True)
    def test_get_configuration_summary(self):
        summary = self.validator.get_configuration_summary()

        assert "配置验证摘要" in summary
        assert "✅ 配置验证通过" in summary
        assert "有效主机数量: 2" in summary

    @patch.dict(os.environ, {}, clear=True)
    def test_get_configuration_summary_with_errors(self):
        summary = self.validator.get_configuration_summary()

        assert "❌ 配置验证失败" in summary
        assert "错误:" in summary
        assert "警告:" in summary
