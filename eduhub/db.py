"""数据库连接与会话管理。

引擎与 ``sessionmaker`` 由 ``create_app`` 创建并挂在 ``app.state`` 上，
请求通过 ``get_db`` 依赖拿到独立的 Session，不存在进程级的全局连接。
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """SQLAlchemy 基类。"""

    pass


def create_db_engine(database_url: str) -> Engine:
    """按 URL 创建引擎。

    SQLite 需要 ``check_same_thread=False`` 以支持线程池中的请求；
    内存库使用 ``StaticPool`` 让所有连接共享同一个库。
    """

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI 依赖，用于获取数据库会话。"""

    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """在已有 Session 上提供事务范围：成功提交，异常回滚后继续抛出。"""

    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
