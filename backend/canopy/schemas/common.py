"""Schema 公共类型"""
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    """带时区的时间换算成 UTC 后去掉时区，库里统一存 naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# 请求里的时间字段，兼容 "2030-01-01T00:00:00Z" / "+08:00" 这类写法
UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
