"""建表并写入预置数据。

应用启动时由 ``create_app`` 调用；也可以单独执行 ``python -m eduhub.seed``
初始化一个新库。
"""

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from eduhub.db import Base
from eduhub.services.achievements import seed_achievements

logger = logging.getLogger(__name__)


def init_database(engine: Engine, session_factory: sessionmaker, seed: bool = True) -> int:
    """确保所有表存在；``seed`` 为真时补齐成就目录，返回新增的成就条数。"""

    Base.metadata.create_all(bind=engine)
    if not seed:
        return 0

    with session_factory() as db:
        created = seed_achievements(db)
    if created:
        logger.info("Seeded %d achievements", created)
    return created


def main() -> None:
    from eduhub.config import get_settings
    from eduhub.db import create_db_engine, make_session_factory

    settings = get_settings()
    engine = create_db_engine(settings.database_url)
    created = init_database(engine, make_session_factory(engine))
    print(f"数据库已初始化: {settings.database_url}")
    print(f"新增成就: {created}")


if __name__ == "__main__":
    main()
