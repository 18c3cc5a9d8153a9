"""日志配置。

统一使用标准库 logging，由 ``create_app`` 在启动时配置一次，
各模块通过 ``logging.getLogger(__name__)`` 获取 logger。
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """配置根 logger：单个 stdout handler，带时间戳的文本格式。"""

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    # 第三方库噪音较大
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
