"""
WeMall Configuration Management
遵循约束：环境变量前缀 WM__
"""
from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """全局配置类"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WM__",
        case_sensitive=False
    )

    # Database
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="wemall")
    db_user: str = Field(default="wemall")
    db_password: str = Field(default="")
    db_pool_size: int = Field(default=20)
    db_max_overflow: int = Field(default=40)
    # 完整连接串，设置后覆盖上面的 host/port/name 组合（测试使用 sqlite+aiosqlite）
    db_url: Optional[str] = Field(default=None)

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_prefix: str = Field(default="/api/wm/v1")
    api_title: str = Field(default="WeMall API")
    api_version: str = Field(default="1.0.0")
    api_debug: bool = Field(default=False)

    # Security
    secret_key: str = Field(default="change-me-in-production")
    algorithm: str = Field(default="HS256")
    access_token_expire_days: int = Field(default=7)
    wechat_openid_prefix: str = Field(default="wx_openid_")

    # Monitoring
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text
    metrics_enabled: bool = Field(default=True)
    metrics_prefix: str = Field(default="wm")

    # 业务规则
    shipping_free_threshold: Decimal = Field(default=Decimal("99.00"))
    shipping_flat_fee: Decimal = Field(default=Decimal("10.00"))
    order_no_prefix: str = Field(default="WX")
    order_no_max_attempts: int = Field(default=5)
    payment_gateway_url: str = Field(default="https://pay.example.com")
    cart_max_quantity: int = Field(default=999)

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v):
        """确保 API 前缀符合规范"""
        if not v.startswith("/api/wm/"):
            raise ValueError("API prefix must start with /api/wm/")
        return v

    @field_validator("metrics_prefix")
    @classmethod
    def validate_metrics_prefix(cls, v):
        """确保指标前缀符合规范"""
        if not v.startswith("wm"):
            raise ValueError("Metrics prefix must start with 'wm'")
        return v

    @field_validator("order_no_max_attempts")
    @classmethod
    def validate_order_no_attempts(cls, v):
        if v < 1:
            raise ValueError("order_no_max_attempts must be at least 1")
        return v

    @property
    def database_url(self) -> str:
        """构建数据库连接字符串"""
        if self.db_url:
            return self.db_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def sync_database_url(self) -> str:
        """构建同步数据库连接字符串（用于 Alembic）"""
        if self.db_url:
            return self.db_url.replace("+asyncpg", "").replace("+aiosqlite", "")
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
