"""
SNS通知服务
"""
import os
import time
from typing import List, Optional
import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import CertificateRecord


# SNS Subject 最长100个字符
SUBJECT_MAX_LENGTH = 100


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务实现"""

    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None):
        """
        初始化SNS通知服务

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')

        if region_name:
            self.region_name = region_name
        elif self.topic_arn and self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        if self.topic_arn:
            self.sns_client = boto3.client('sns', region_name=self.region_name)
            self.logger.info(f"SNS客户端初始化成功，区域: {self.region_name}")

    @property
    def enabled(self) -> bool:
        return self.sns_client is not None and bool(self.topic_arn)

    def send_flagged_notification(self, records: List[CertificateRecord]) -> bool:
        """
        发送需关注证书的通知

        Args:
            records: 需关注的证书记录

        Returns:
            bool: 发送是否成功
        """
        if not records:
            self.logger.info("没有需要关注的证书，跳过通知发送")
            return True

        if not self._validate_configuration():
            return False

        subject = self._format_subject(records)
        message = self.format_notification_content(records)

        return self._publish_with_retry(subject, message)

    def _publish_with_retry(self, subject: str, message: str, max_retries: int = 3) -> bool:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容
            max_retries: 最大重试次数

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject[:SUBJECT_MAX_LENGTH],
                    Message=message
                )

                self.logger.info(f"SNS通知发送成功，MessageId: {response.get('MessageId')}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False

            except BotoCoreError as e:
                self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        """
        判断错误是否可重试

        Args:
            error_code: AWS错误代码

        Returns:
            bool: 是否可重试
        """
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors

    def format_notification_content(self, records: List[CertificateRecord]) -> str:
        """
        格式化通知内容

        Args:
            records: 证书记录列表

        Returns:
            str: 格式化的通知内容
        """
        if not records:
            return "所有TLS证书状态正常。"

        failed = [record for record in records if record.error_text]
        sunset = [record for record in records
                  if not record.error_text and record.sunset_policy is not None and record.expires_soon]
        expiring = [record for record in records
                    if not record.error_text and record.sunset_policy is None and record.expires_soon]

        lines = [
            "TLS证书链扫描报告",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            ""
        ]

        if failed:
            lines.extend(["❌ 证书校验失败:", ""])
            for record in failed:
                lines.extend(self._format_record(record))
                lines.append(f"  错误: {record.error_text}")
                lines.append("")

        if sunset:
            lines.extend(["🚨 使用即将淘汰签名算法的证书:", ""])
            for record in sunset:
                lines.extend(self._format_record(record))
                lines.append(f"  淘汰算法: {record.sunset_policy.name} ({record.sunset_date_text})")
                lines.append("")

        if expiring:
            lines.extend(["⚠️  即将过期证书:", ""])
            for record in expiring:
                lines.extend(self._format_record(record))
                lines.append("")

        lines.extend([
            "建议操作:",
            "1. 检查校验失败主机的证书链和主机名配置",
            "2. 使用SHA-256及以上签名算法重新签发证书",
            "3. 续期即将过期的证书并重新部署相关服务",
            "",
            "此消息由TLS证书链监控系统自动发送。"
        ])

        return "\n".join(lines)

    def _format_record(self, record: CertificateRecord) -> List[str]:
        return [
            f"• {record.host_label} - {record.subject_common_name}",
            f"  颁发者: {record.issuer_common_name}",
            f"  签名算法: {record.signature_algorithm_label}",
            f"  过期时间: {record.not_after.strftime('%Y-%m-%d %H:%M:%S')} ({record.expires_in_text})",
        ]

    def _format_subject(self, records: List[CertificateRecord]) -> str:
        """
        格式化邮件主题

        Args:
            records: 证书记录列表

        Returns:
            str: 邮件主题
        """
        failed_count = len([record for record in records if record.error_text])
        expiring_count = len([record for record in records if record.expires_soon and not record.error_text])

        if failed_count > 0 and expiring_count > 0:
            return f"🚨 TLS证书警报: {failed_count}个校验失败, {expiring_count}个即将过期或淘汰"
        elif failed_count > 0:
            return f"🚨 TLS证书警报: {failed_count}个证书校验失败"
        elif expiring_count > 0:
            return f"⚠️ TLS证书提醒: {expiring_count}个证书即将过期或淘汰"
        else:
            return "TLS证书状态报告"

    def _validate_configuration(self) -> bool:
        """
        验证配置是否正确

        Returns:
            bool: 配置是否有效
        """
        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        return True

    def test_connection(self) -> bool:
        """
        测试SNS连接

        Returns:
            bool: 连接是否成功
        """
        if not self._validate_configuration():
            return False

        try:
            self.sns_client.get_topic_attributes(TopicArn=self.topic_arn)
            self.logger.info("SNS连接测试成功")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS连接测试失败 - {error_code}: {error_message}")
            return False

        except BotoCoreError as e:
            self.logger.error(f"SNS连接测试时发生错误: {str(e)}")
            return False
