"""
命令行入口
"""
import argparse
import dataclasses
import sys
from typing import List, Optional

import colorama

from .lambda_handler import TLSChainMonitor
from .models import LookaheadWindow
from .services.config_validator import ConfigValidator, load_scan_config, validate_lookahead
from .services.error_handler import ConfigurationError
from .services.host_source import HostSource
from .services.report import write_report
from .services.sns_notification import SNSNotificationService


EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tls-chain-monitor",
        description="检查主机的TLS证书链：过期时间与即将淘汰的签名算法"
    )
    parser.add_argument("hosts", nargs="*", help="host 或 host:port，未指定时读取 DOMAINS 环境变量")
    parser.add_argument("-f", "--file", help="主机列表文件，每行一个主机")
    parser.add_argument("--years", type=int, help="过期预警窗口（年）")
    parser.add_argument("--months", type=int, help="过期预警窗口（月）")
    parser.add_argument("--days", type=int, help="过期预警窗口（日）")
    parser.add_argument("--timeout", type=float, help="单个主机握手超时时间（秒）")
    parser.add_argument("--workers", type=int, help="并行扫描的主机数量")
    parser.add_argument("--format", dest="output_format", choices=["table", "json"], default="table")
    parser.add_argument("--color", action="store_true", help="用红色标出即将过期和出错的证书")
    parser.add_argument("--sort-by-host", action="store_true", help="按主机名排序输出")
    parser.add_argument("--log-level", help="日志级别")
    parser.add_argument("--check-config", action="store_true", help="只验证环境变量配置，不扫描")
    return parser


def check_config() -> int:
    """
    验证环境变量配置并输出摘要

    Returns:
        int: 配置有效时为0，否则为2
    """
    validator = ConfigValidator()
    validation_result = validator.validate_all_configurations()
    print(validator.get_configuration_summary())

    notification_service = SNSNotificationService()
    if notification_service.enabled:
        connected = notification_service.test_connection()
        print(f"SNS连接: {'✅' if connected else '❌'}")

    return EXIT_OK if validation_result['is_valid'] else EXIT_CONFIG_ERROR


def _override(value, default):
    return default if value is None else value


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.check_config:
        return check_config()

    try:
        config = load_scan_config()
        lookahead = validate_lookahead(LookaheadWindow(
            years=_override(args.years, config.lookahead.years),
            months=_override(args.months, config.lookahead.months),
            days=_override(args.days, config.lookahead.days),
        ))
        if args.workers is not None and args.workers < 1:
            raise ConfigurationError("并行数量不能小于1")
        if args.timeout is not None and args.timeout <= 0:
            raise ConfigurationError("超时时间必须大于0")

        config = dataclasses.replace(
            config,
            lookahead=lookahead,
            timeout=_override(args.timeout, config.timeout),
            max_workers=_override(args.workers, config.max_workers),
            log_level=(args.log_level or config.log_level).upper(),
        )

        host_source = HostSource(hosts=args.hosts or None, file_path=args.file)
        monitor = TLSChainMonitor(config=config, host_source=host_source)
        result = monitor.execute()

    except ConfigurationError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.color:
        colorama.just_fix_windows_console()

    write_report(result, sys.stdout, output_format=args.output_format,
                 color=args.color, sort_by_host=args.sort_by_host)
    return EXIT_OK
