"""
渐进式发布 - 配置模块
"""
from functools import lru_cache
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .exceptions import RolloutConfigException
from .models import DEFAULT_DURATION_SECS


class RolloutSettings(BaseSettings):
    """发布配置"""
    
    # 整体发布时长（秒）, 首步之后按观测到的单步耗时均分
    DURATION_SECS: int = Field(default=DEFAULT_DURATION_SECS, gt=1)
    
    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    
    class Config:
        env_prefix = "ROLLOUT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


def load_settings(**overrides) -> RolloutSettings:
    """加载配置, 配置值非法时抛出RolloutConfigException"""
    try:
        return RolloutSettings(**overrides)
    except ValidationError as e:
        raise RolloutConfigException(
            errors=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()]
        )


@lru_cache()
def get_settings() -> RolloutSettings:
    """获取配置单例"""
    return load_settings()
