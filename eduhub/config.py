"""应用配置管理。

使用 Pydantic Settings 统一读取环境变量，便于在本地/生产之间切换。
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """核心配置项。

    - ``database_url``：默认使用本地 SQLite，便于快速启动。
    - ``jwt_secret_key``：Token 签名密钥，默认值仅供开发，生产必须覆盖。
    - ``dashboard_access``：``open`` 保持原有的开放访问；``owner`` 只允许本人或管理员查看统计。
    """

    database_url: str = Field(
        default="sqlite:///./storage/eduhub.db", description="SQLAlchemy 数据库 URL"
    )
    jwt_secret_key: str = Field(
        default="dev-secret-change-in-production", description="JWT 签名密钥"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT 签名算法")
    token_expire_hours: int = Field(default=24, description="Token 有效期（小时）")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, description="bcrypt 计算轮数")

    dashboard_access: Literal["open", "owner"] = Field(
        default="open", description="仪表盘统计接口的访问模式"
    )
    group_member_limit: int = Field(default=10, description="小组成员上限")

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")
    seed_on_startup: bool = Field(default=True, description="启动时写入成就目录")

    model_config = {
        "env_prefix": "EDUHUB_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """缓存后的全局配置实例。"""

    return Settings()
