"""
日志配置
控制台彩色输出 + 按天滚动的文件日志，每条日志带上当前请求的租户
"""

import logging
import sys
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from canopy.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(tenant)s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 当前请求的租户 slug，由 get_current_tenant 写入；请求之外为 "-"
current_tenant: ContextVar[str] = ContextVar("current_tenant", default="-")

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "aiosqlite")


class TenantFilter(logging.Filter):
    """给日志记录补上 tenant 字段"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.tenant = current_tenant.get()
        return True


class ColoredFormatter(logging.Formatter):
    """只给级别名上色，格式化完还原，文件日志不受影响"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _rotating_file(path: Path, level: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=settings.LOG_RETENTION_DAYS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    配置根日志器

    - 控制台：彩色，全部级别
    - canopy.log：INFO 及以上，每天零点滚动
    - error.log：ERROR 及以上

    重复调用会先清掉已有处理器
    """
    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))

    tenant_filter = TenantFilter()
    for handler in (
        console_handler,
        _rotating_file(log_path / "canopy.log", logging.INFO),
        _rotating_file(log_path / "error.log", logging.ERROR),
    ):
        handler.addFilter(tenant_filter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("📋 日志系统初始化完成")


def get_logger(name: str) -> logging.Logger:
    """
    获取命名日志器

    Usage:
        logger = get_logger(__name__)
        logger.info("Hello")
    """
    return logging.getLogger(name)
