"""FastAPI 入口：应用工厂、中间件、异常处理与路由注册。"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from eduhub.api import router as api_router
from eduhub.config import Settings, get_settings
from eduhub.db import create_db_engine, make_session_factory
from eduhub.errors import register_exception_handlers
from eduhub.logger import configure_logging
from eduhub.seed import init_database

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """应用工厂，便于测试时注入配置和数据库引擎。"""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = engine or create_db_engine(settings.database_url)

    app = FastAPI(title="EduHub API", version="0.1.0")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    def init_models() -> None:
        """启动时确保表存在，并按配置写入成就目录。"""

        init_database(engine, app.state.session_factory, seed=settings.seed_on_startup)
        logger.info("EduHub API started (dashboard access: %s)", settings.dashboard_access)

    app.include_router(api_router)
    return app


app = create_app()
