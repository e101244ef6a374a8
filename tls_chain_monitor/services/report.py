"""
报表输出服务
"""
import json
from typing import Iterable, List, TextIO

from colorama import Fore, Style

from ..models import CertificateRecord, ScanResult


TABLE_HEADER = ["NAME", "SUBJECT", "ISSUER", "ALGO", "EXPIRES", "SUNSET DATE", "ERROR"]
MIN_WIDTH = 20
PADDING = 2

EXPIRES_COLUMN = 4
ERROR_COLUMN = 6


def _red(text: str) -> str:
    return f"{Fore.RED}{text}{Style.RESET_ALL}"


def render_table(records: Iterable[CertificateRecord], color: bool = False) -> str:
    """
    渲染对齐的文本表格

    Args:
        records: 证书记录
        color: 是否用红色标出即将过期和出错的单元格

    Returns:
        str: 表格文本
    """
    records = list(records)
    rows = [TABLE_HEADER] + [record.to_row() for record in records]

    # 最后一列不补齐
    widths = [
        max(MIN_WIDTH, max(len(row[column]) for row in rows) + PADDING)
        for column in range(len(TABLE_HEADER) - 1)
    ]

    lines = []
    for index, row in enumerate(rows):
        cells = [cell.ljust(width) for cell, width in zip(row, widths)] + [row[-1]]
        if color and index > 0:
            record = records[index - 1]
            if record.expires_soon:
                cells[EXPIRES_COLUMN] = _red(row[EXPIRES_COLUMN]) + " " * (widths[EXPIRES_COLUMN] - len(row[EXPIRES_COLUMN]))
            if record.error_text:
                cells[ERROR_COLUMN] = _red(row[ERROR_COLUMN])
        lines.append("".join(cells).rstrip())

    return "\n".join(lines) + "\n"


def render_json_lines(records: Iterable[CertificateRecord]) -> str:
    """每条证书记录输出一行JSON"""
    lines = [json.dumps(record.to_dict(), ensure_ascii=False) for record in records]
    return "".join(line + "\n" for line in lines)


def write_report(result: ScanResult, stream: TextIO, output_format: str = "table",
                 color: bool = False, sort_by_host: bool = False) -> List[CertificateRecord]:
    """
    输出扫描报表

    Args:
        result: 扫描结果
        stream: 输出流
        output_format: "table" 或 "json"
        color: 表格是否着色
        sort_by_host: 是否按主机名排序

    Returns:
        List[CertificateRecord]: 已输出的记录
    """
    if sort_by_host:
        result = result.sorted_by_host()

    records = list(result.records())

    if output_format == "json":
        stream.write(render_json_lines(records))
    else:
        stream.write(render_table(records, color=color))

    return records
