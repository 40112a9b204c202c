from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Canopy 后台管理系统"
    API_V1_STR: str = "/api/v1"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./canopy.db"

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_RETENTION_DAYS: int = Field(default=14, description="文件日志保留天数")

    # 定时任务（批次过期清理、寄售逾期提醒）
    SCHEDULER_ENABLED: bool = True
    MAINTENANCE_HOUR: int = 3
    MAINTENANCE_MINUTE: int = 0

    # 业务阈值
    FRONTED_WARNING_DAYS: int = Field(default=7, description="寄售超过该天数进入预警")
    FRONTED_OVERDUE_DAYS: int = Field(default=14, description="寄售超过该天数视为逾期")
    DEFAULT_PAYMENT_TERMS: int = Field(default=7, description="默认账期（天）")
    BATCH_EXPIRY_WARNING_DAYS: int = Field(default=30, description="批次临期预警天数")

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
