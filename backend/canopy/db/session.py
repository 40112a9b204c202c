import os
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from canopy.core.config import settings


def build_async_url(uri: str) -> str:
    """sqlite:/// 地址转换为 aiosqlite 驱动地址"""
    if uri.startswith("sqlite:///"):
        return uri.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return uri


# 仅在开发环境打印SQL（通过环境变量控制）
engine = create_async_engine(
    build_async_url(settings.SQLITE_DATABASE_URI),
    echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
    future=True,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
