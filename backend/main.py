"""
TeeMeYou Marketplace - FastAPI主应用
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.endpoints import files
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.log_utils import get_logger, setup_logging
from app.core.storage import get_storage_service
from app.core.storage.exceptions import (
    InvalidKeyError,
    InvalidPayloadError,
    MovePhase,
    StorageError,
    StorageMoveError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from app.db.database import close_db
from app.schemas.common import ErrorResponse

# 初始化日志系统
setup_logging()

# 在导入其他模块之前完成日志设置
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("应用启动中...")

    store = get_storage_service()
    try:
        await store.init()
    except StorageUnavailableError as e:
        # 初始化失败不会被记住，首次存储操作时会再次校验
        logger.warning("对象存储暂不可用，将在首次访问时重试", error=str(e))
    app.state.object_store = store

    logger.info("应用启动完成", storage_adapter=store.adapter.ADAPTER_NAME)

    yield

    logger.info("应用关闭")
    await close_db()


# 创建FastAPI应用实例
app = FastAPI(
    title=settings.project_name,
    version=settings.app_version,
    description="电商平台对象存储与商品图片服务",
    openapi_url=f"{settings.api_v1_str}/openapi.json",
    docs_url=f"{settings.api_v1_str}/docs",
    redoc_url=f"{settings.api_v1_str}/redoc",
    lifespan=lifespan
)

# 添加CORS中间件 - 确保在所有路由之前添加
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)


# ==================== 存储异常处理 ====================

def _error_response(status_code: int, message: str, exc: StorageError) -> JSONResponse:
    body = ErrorResponse(message=message, error_code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(InvalidKeyError)
async def invalid_key_handler(_: Request, exc: InvalidKeyError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, "对象键不合法", exc)


@app.exception_handler(InvalidPayloadError)
async def invalid_payload_handler(_: Request, exc: InvalidPayloadError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, "上传内容不合法", exc)


@app.exception_handler(StorageReadError)
async def read_error_handler(_: Request, exc: StorageReadError) -> JSONResponse:
    if exc.is_not_found:
        return _error_response(status.HTTP_404_NOT_FOUND, "文件不存在", exc)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "文件暂时无法读取", exc)


@app.exception_handler(StorageMoveError)
async def move_error_handler(_: Request, exc: StorageMoveError) -> JSONResponse:
    if isinstance(exc.__cause__, InvalidKeyError):
        return _error_response(status.HTTP_400_BAD_REQUEST, "对象键不合法", exc)
    if exc.phase == MovePhase.VALIDATE:
        return _error_response(status.HTTP_404_NOT_FOUND, "源文件不存在", exc)
    if exc.phase == MovePhase.DOWNLOAD:
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "源文件暂时无法读取", exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "文件迁移失败", exc)


@app.exception_handler(StorageWriteError)
async def write_error_handler(_: Request, exc: StorageWriteError) -> JSONResponse:
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "文件上传失败", exc)


@app.exception_handler(StorageUnavailableError)
async def unavailable_handler(_: Request, exc: StorageUnavailableError) -> JSONResponse:
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "对象存储不可用", exc)


@app.exception_handler(StorageError)
async def storage_error_handler(_: Request, exc: StorageError) -> JSONResponse:
    logger.error("未处理的存储异常", exception=exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "存储操作失败", exc)


# 注册API路由
app.include_router(api_router, prefix=settings.api_v1_str)

# 文件访问路由：/{storage_files_prefix}/{object_key} 与 /temp/{identifier}/{filename}
app.include_router(
    files.router,
    prefix=f"/{settings.storage_files_prefix}" if settings.storage_files_prefix else ""
)
app.include_router(files.temp_router, prefix="/temp")


@app.get("/")
def read_root():
    """根路径"""
    return {
        "message": "TeeMeYou Marketplace API",
        "version": settings.app_version,
        "docs": f"{settings.api_v1_str}/docs"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower()
    )
