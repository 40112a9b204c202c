"""
单据号生成：前缀 + 日期 + 流水号

流水号按数值取最大值再加一，不按字符串比较，
超过位数（如第 1000 张退货单）后继续递增
"""

from typing import Iterable


def next_number(existing: Iterable[str], prefix: str, width: int) -> str:
    """existing 为同一前缀下已有的单据号，后缀不是纯数字的（手工录入）忽略"""
    seq = 0
    for number in existing:
        suffix = (number or "")[len(prefix):]
        if suffix.isdigit():
            seq = max(seq, int(suffix))
    return f"{prefix}{seq + 1:0{width}d}"
