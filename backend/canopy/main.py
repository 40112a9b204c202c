from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from canopy.api.api_v1.api import api_router
from canopy.core.config import settings
from canopy.core.logging_config import setup_logging, get_logger
from canopy.services.scheduler import init_scheduler, shutdown_scheduler
from canopy.db.init_db import ensure_tables_exist

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("🚀 应用启动中...")

    try:
        await ensure_tables_exist()
        logger.info("📊 数据库表已就绪")
    except Exception as e:
        logger.warning(f"数据库表初始化警告: {e}")

    init_scheduler()
    yield
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="多租户大麻零售/批发后台 - 客户、库存、寄售、退货、质检、财务",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ 未处理的异常: {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "服务器内部错误"})


logger.info(f"注册API v1路由，前缀: {settings.API_V1_STR}")
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
