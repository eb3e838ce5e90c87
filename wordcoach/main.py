#!/usr/bin/env python3
"""
背单词测试协调服务 - FastAPI 主应用入口
Description: REST API 驱动测试会话与学习计划，WebSocket 推送协调器事件
"""

import asyncio
import logging
import platform
from contextlib import asynccontextmanager

import psutil
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wordcoach.api.dependencies import AppServices, build_services
from wordcoach.api.routes import dictionary, plans, sessions, websocket, words
from wordcoach.api.websocket_manager import websocket_manager
from wordcoach.config.settings import settings
from wordcoach.utils.database import check_db_connection, get_db_session, init_db
from wordcoach.utils.helpers import format_timestamp
from wordcoach.utils.logger import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时初始化数据库、组装服务并在后台线程加载词典
    - 关闭时等待未完成的上报并断开所有WebSocket
    """
    setup_logging()
    logger.info("初始化背单词测试服务...")

    db = None
    try:
        init_db()

        services: AppServices = getattr(app.state, "services", None)
        if services is None:
            db = get_db_session()
            services = build_services(db)
            app.state.services = services

        services.coordinator.add_listener(websocket_manager.publish_nowait)

        if not services.dictionary_service.is_loaded:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, services.dictionary_service.load)

        logger.info("背单词测试服务启动完成")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    yield  # 应用运行期间

    logger.info("正在关闭背单词测试服务...")
    services.coordinator.remove_listener(websocket_manager.publish_nowait)
    await services.coordinator.drain()
    await services.familiar_words_service.drain()
    await websocket_manager.close_all()
    if db is not None:
        db.close()
    logger.info("背单词测试服务已安全关闭")


def create_application(services: AppServices = None) -> FastAPI:
    """
    创建并配置FastAPI应用实例

    Args:
        services: 预先组装好的服务，测试时注入
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="单词测试会话协调、学习计划与词典查询",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "内部服务器错误"}
        )

    app.include_router(dictionary.router, prefix="/api/v1/dictionary", tags=["词典"])
    app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["测试会话"])
    app.include_router(plans.router, prefix="/api/v1/plans", tags=["学习计划"])
    app.include_router(words.router, prefix="/api/v1/words", tags=["熟词"])
    app.include_router(websocket.router)

    @app.get("/")
    async def root():
        """根端点 - 服务状态检查"""
        return {
            "status": "running",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": format_timestamp()
        }

    @app.get("/health")
    async def health_check():
        """健康检查端点"""
        db_status = check_db_connection()
        dictionary_status = app.state.services.dictionary_service.is_loaded

        return {
            "status": "healthy" if db_status and dictionary_status else "unhealthy",
            "database": "connected" if db_status else "disconnected",
            "dictionary": "loaded" if dictionary_status else "unavailable",
            "timestamp": format_timestamp()
        }

    @app.get("/api/v1/system/info")
    async def system_info():
        """系统信息端点"""
        coordinator = app.state.services.coordinator
        return {
            "python_version": platform.python_version(),
            "platform": platform.platform(),
            "cpu_usage": psutil.cpu_percent(),
            "memory_usage": psutil.virtual_memory().percent,
            "active_connections": websocket_manager.get_connection_count(),
            "coordinator_phase": coordinator.phase.value,
            "dictionary_words": len(app.state.services.dictionary_service.word_map),
            "round_end_test_type": settings.ROUND_END_TEST_TYPE
        }

    return app


# 创建应用实例
app = create_application()


if __name__ == "__main__":
    """开发环境直接运行"""
    uvicorn.run(
        "wordcoach.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
        ws_ping_interval=20,
        ws_ping_timeout=20,
    )
